from __future__ import annotations

import logging
import os
import threading
from typing import Any, Callable, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from mathstack_core.cards import CardColor, Difficulty
from mathstack_core.catalog import LEVEL_COUNT, LevelCatalog, normalize_seed_id
from mathstack_core.db import DEFAULT_DB, SqliteBlobStore
from mathstack_core.engine import DEFAULT_AUTOSAVE_INTERVAL, PuzzleEngine
from mathstack_core.scoring import experience_for_quick_score, format_time, quick_score
from mathstack_core.state import MoveResult
from mathstack_core.stats import HISTORY_LIMIT, SqliteStatistics

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = os.getenv("MATHSTACK_DB", DEFAULT_DB)
AUTOSAVE_SECONDS = float(os.getenv("MATHSTACK_AUTOSAVE_SECONDS", str(DEFAULT_AUTOSAVE_INTERVAL)))
CATALOG_SIZE = int(os.getenv("MATHSTACK_LEVEL_COUNT", str(LEVEL_COUNT)))

app = Flask(__name__)

# Commands, ticks and autosaves all go through this lock; the engine is single-writer.
_lock = threading.Lock()
_engine: Optional[PuzzleEngine] = None
_stats: Optional[SqliteStatistics] = None


def configure(engine: Optional[PuzzleEngine], stats: Optional[SqliteStatistics] = None) -> None:
    """Swaps in an engine (and the statistics it records to), e.g. for tests. None resets to lazy defaults."""
    global _engine, _stats
    with _lock:
        _engine = engine
        _stats = stats if stats is not None else getattr(engine, 'stats', None)


def _get_engine() -> PuzzleEngine:
    global _engine, _stats
    if _engine is None:
        _stats = SqliteStatistics(DEFAULT_DB_PATH)
        _engine = PuzzleEngine(
            catalog=LevelCatalog(CATALOG_SIZE),
            store=SqliteBlobStore(DEFAULT_DB_PATH),
            stats=_stats,
            autosave_interval=AUTOSAVE_SECONDS,
        )
        logger.info("Engine ready (db=%s, levels=%d)", DEFAULT_DB_PATH, CATALOG_SIZE)
    return _engine


class BadRequest(ValueError):
    pass


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequest("JSON object body required")
    return data


def _int(obj: Dict[str, Any], key: str) -> int:
    v = obj.get(key)
    if isinstance(v, bool):
        raise BadRequest(f"{key} must be an integer")
    try:
        return int(v)
    except (TypeError, ValueError):
        raise BadRequest(f"{key} must be an integer")


def _color(obj: Dict[str, Any]) -> CardColor:
    try:
        return CardColor.parse(str(obj.get("color", "")))
    except ValueError as e:
        raise BadRequest(str(e))


def _difficulty(obj: Dict[str, Any]) -> Difficulty:
    try:
        return Difficulty.parse(obj.get("difficulty", "easy"))
    except ValueError as e:
        raise BadRequest(str(e))


def _state_json(engine: PuzzleEngine, result: Optional[MoveResult] = None) -> Dict[str, Any]:
    out: Dict[str, Any] = {"ok": True, "state": engine.view()}
    if result is not None:
        out["message"] = result.message
        out["won"] = result.won
        if result.won and engine.session is not None:
            s = engine.session
            rating = quick_score(s.difficulty, s.elapsed_seconds, s.moves)
            out["score"] = result.score
            out["rating"] = rating
            out["xp"] = experience_for_quick_score(s.difficulty, rating)
            out["time"] = format_time(s.elapsed_seconds)
    return out


def _no_session() -> Tuple[Any, int]:
    return jsonify({"ok": False, "error": "No game in progress"}), 409


def _move_response(engine: PuzzleEngine, result: MoveResult) -> Any:
    if not result.ok:
        return jsonify({"ok": False, "error": result.message, "state": engine.view()}), 400
    return jsonify(_state_json(engine, result))


def _locked(fn: Callable[[PuzzleEngine, Dict[str, Any]], Any], need_session: bool = False,
            need_active: bool = False) -> Any:
    try:
        body = _body()
    except BadRequest as e:
        return jsonify({"ok": False, "error": str(e)}), 400
    with _lock:
        engine = _get_engine()
        s = engine.session
        if (need_session or need_active) and s is None:
            return _no_session()
        if need_active and not s.started:
            return _no_session()
        try:
            return fn(engine, body)
        except BadRequest as e:
            return jsonify({"ok": False, "error": str(e)}), 400


# ---------- Session lifecycle ----------


@app.get("/api/state")
def api_state() -> Any:
    with _lock:
        engine = _get_engine()
        return jsonify({"ok": True, "state": engine.view(), "hasSavedGame": engine.has_saved_game()})


@app.post("/api/new")
def api_new() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        seed_text = body.get("seedId")
        if seed_text:
            try:
                difficulty, seed_id = normalize_seed_id(str(seed_text), count=engine.catalog.count)
            except ValueError as e:
                raise BadRequest(str(e))
            engine.reset_game()
            engine.start_game_with_seed(difficulty, seed_id)
        else:
            engine.start_new_game_from_pause(_difficulty(body))
        return jsonify(_state_json(engine))
    return _locked(_run)


@app.post("/api/restart")
def api_restart() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        engine.restart_current_level()
        return jsonify(_state_json(engine))
    return _locked(_run, need_session=True)


@app.post("/api/give_up")
def api_give_up() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        engine.give_up_game()
        return jsonify(_state_json(engine))
    return _locked(_run, need_session=True)


@app.post("/api/save_exit")
def api_save_exit() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        saved = engine.save_and_exit_game()
        out = _state_json(engine)
        out["saved"] = saved
        return jsonify(out)
    return _locked(_run, need_session=True)


@app.post("/api/load")
def api_load() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        if not engine.load_saved_game():
            return jsonify({"ok": False, "error": "No saved game"}), 404
        return jsonify(_state_json(engine))
    return _locked(_run)


# ---------- Timers ----------


@app.post("/api/pause")
def api_pause() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        changed = engine.pause()
        out = _state_json(engine)
        out["changed"] = changed
        return jsonify(out)
    return _locked(_run, need_active=True)


@app.post("/api/resume")
def api_resume() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        changed = engine.resume()
        out = _state_json(engine)
        out["changed"] = changed
        return jsonify(out)
    return _locked(_run, need_active=True)


@app.post("/api/tick")
def api_tick() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        elapsed = engine.advance_time()
        autosaved = engine.request_autosave_if_due()
        return jsonify({"ok": True, "elapsedSeconds": elapsed, "time": format_time(elapsed), "autosaved": autosaved})
    return _locked(_run, need_active=True)


# ---------- Moves ----------


@app.post("/api/select")
def api_select() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        kind = body.get("kind")
        if kind == "grid":
            accepted = engine.select_grid_cell(_int(body, "row"), _int(body, "col"))
        elif kind == "temp":
            accepted = engine.select_temp_slot(_int(body, "slot"))
        elif kind == "collection":
            index = _int(body, "index") if "index" in body else -1
            accepted = engine.select_collection(_color(body), index)
        elif kind == "clear":
            engine.clear_selection()
            accepted = True
        else:
            raise BadRequest("kind must be grid, temp, collection or clear")
        if not accepted:
            return jsonify({"ok": False, "error": "Selection not allowed", "state": engine.view()}), 400
        return jsonify(_state_json(engine))
    return _locked(_run, need_active=True)


def _dispatch_move(engine: PuzzleEngine, source: Dict[str, Any], target: Dict[str, Any]) -> MoveResult:
    src, dst = source.get("kind"), target.get("kind")
    if src == "grid":
        coord = (_int(source, "row"), _int(source, "col"))
        if dst == "grid":
            return engine.move_card_from_grid(coord, (_int(target, "row"), _int(target, "col")))
        if dst == "temp":
            return engine.move_card_from_grid_to_temp_slot(coord, _int(target, "slot"))
        if dst == "collection":
            return engine.move_card_from_grid_to_collection(coord, _color(target))
    elif src == "temp":
        slot = _int(source, "slot")
        if dst == "grid":
            return engine.move_card_from_temp_slot(slot, (_int(target, "row"), _int(target, "col")))
        if dst == "temp":
            return engine.move_card_between_temp_slots(slot, _int(target, "slot"))
        if dst == "collection":
            if source.get("whole"):
                return engine.move_slot_stack_to_collection(slot, _color(target))
            return engine.move_card_from_temp_slot_to_collection(slot, _color(target))
    elif src == "collection":
        color = _color(source)
        index = _int(source, "index") if "index" in source else -1
        if dst == "grid":
            return engine.move_card_from_collection(color, index, (_int(target, "row"), _int(target, "col")))
        if dst == "temp":
            return engine.move_card_from_collection_to_temp_slot(color, index, _int(target, "slot"))
    raise BadRequest(f"Unsupported move {src!r} -> {dst!r}")


@app.post("/api/move")
def api_move() -> Any:
    def _run(engine: PuzzleEngine, body: Dict[str, Any]) -> Any:
        source, target = body.get("source"), body.get("target")
        if not isinstance(source, dict) or not isinstance(target, dict):
            raise BadRequest("source and target required")
        return _move_response(engine, _dispatch_move(engine, source, target))
    return _locked(_run, need_active=True)


@app.post("/api/collect")
def api_collect() -> Any:
    return _locked(
        lambda engine, body: _move_response(engine, engine.collect_card(_int(body, "row"), _int(body, "col"))),
        need_active=True,
    )


@app.post("/api/undo")
def api_undo() -> Any:
    return _locked(lambda engine, body: _move_response(engine, engine.undo_move()), need_active=True)


@app.post("/api/shuffle")
def api_shuffle() -> Any:
    return _locked(lambda engine, body: _move_response(engine, engine.shuffle_cards()), need_active=True)


# ---------- Levels and statistics ----------


@app.get("/api/levels/<seed_id>")
def api_level(seed_id: str) -> Any:
    with _lock:
        engine = _get_engine()
        try:
            difficulty, normalized = normalize_seed_id(seed_id, count=engine.catalog.count)
        except ValueError as e:
            return jsonify({"ok": False, "error": str(e)}), 400
        level = engine.catalog.get_level(difficulty, normalized)
        if level is None:
            return jsonify({"ok": False, "error": f"Level {normalized} not found"}), 404
        grid = [
            [[{"number": card.number, "color": card.color.value} for card in stack] for stack in row]
            for row in level.layout
        ]
        return jsonify({"ok": True, "seedId": level.seed_id, "difficulty": difficulty.value, "grid": grid})


@app.get("/api/stats")
def api_stats() -> Any:
    with _lock:
        _get_engine()
        stats = _stats
        if stats is None:
            return jsonify({"ok": False, "error": "Statistics unavailable"}), 404
        try:
            limit = int(request.args.get("limit", HISTORY_LIMIT))
        except ValueError:
            return jsonify({"ok": False, "error": "limit must be an integer"}), 400
        return jsonify({
            "ok": True,
            "summary": stats.summary(),
            "byDifficulty": {d.value: stats.summary(d) for d in Difficulty},
            "streaks": stats.streaks(),
            "history": stats.history(limit),
        })


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    debug = os.getenv("FLASK_DEBUG", os.getenv("DEBUG", "0")).lower() in ("1", "true", "yes", "on")
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", "5000")), debug=debug)

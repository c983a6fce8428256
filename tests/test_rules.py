import unittest

from game import (
    Card,
    CardColor,
    Grid,
    add_to_temp_slot,
    can_add_slot_stack_to_collection,
    can_add_to_collection,
    can_add_to_temp_slot,
    is_run,
)

R, B, G = CardColor.RED, CardColor.BLUE, CardColor.GREEN


def cards(color, *numbers):
    return [Card(n, color) for n in numbers]


class TestCollectionRule(unittest.TestCase):
    def test_given_empty_collection_when_checking_then_only_one_or_max_start_it(self):
        self.assertTrue(can_add_to_collection([], 1, 5))
        self.assertTrue(can_add_to_collection([], 5, 5))
        self.assertFalse(can_add_to_collection([], 3, 5))

    def test_given_ascending_collection_when_checking_then_only_next_number_fits(self):
        self.assertTrue(can_add_to_collection([1], 2, 5))
        self.assertFalse(can_add_to_collection([1], 1, 5))
        self.assertFalse(can_add_to_collection([1, 2], 4, 5))
        self.assertFalse(can_add_to_collection([1, 2, 3, 4, 5], 6, 5))

    def test_given_descending_collection_when_checking_then_only_previous_number_fits(self):
        self.assertTrue(can_add_to_collection([15], 14, 15))
        self.assertFalse(can_add_to_collection([15], 16, 15))
        self.assertFalse(can_add_to_collection([15, 14], 15, 15))
        self.assertFalse(can_add_to_collection([5, 4, 3, 2, 1], 0, 5))

    def test_given_inputs_when_checking_then_collection_is_not_mutated(self):
        collection = [1, 2]
        can_add_to_collection(collection, 3, 5)
        self.assertEqual(collection, [1, 2])


class TestTempSlotRule(unittest.TestCase):
    def test_given_green_five_in_slot_when_checking_neighbors_then_run_extends_at_either_end(self):
        slot = [Card(5, G)]
        self.assertTrue(can_add_to_temp_slot(slot, Card(6, G)))
        self.assertTrue(can_add_to_temp_slot(slot, Card(4, G)))
        self.assertFalse(can_add_to_temp_slot(slot, Card(6, B)))
        self.assertFalse(can_add_to_temp_slot(slot, Card(7, G)))
        self.assertEqual(slot, [Card(5, G)])

    def test_given_empty_slot_when_checking_then_anything_fits(self):
        self.assertTrue(can_add_to_temp_slot([], Card(9, B)))

    def test_given_run_when_adding_then_top_extension_appends_and_bottom_extension_inserts(self):
        slot = cards(R, 3, 4)
        add_to_temp_slot(slot, Card(5, R))
        self.assertEqual(slot, cards(R, 3, 4, 5))
        add_to_temp_slot(slot, Card(2, R))
        self.assertEqual(slot, cards(R, 2, 3, 4, 5))

    def test_given_misfit_card_when_adding_then_value_error(self):
        with self.assertRaises(ValueError):
            add_to_temp_slot(cards(R, 3), Card(7, R))

    def test_given_mixed_or_gapped_stacks_when_checking_run_then_false(self):
        self.assertTrue(is_run(cards(R, 4, 3, 2)))
        self.assertFalse(is_run(cards(R, 1, 3)))
        self.assertFalse(is_run([Card(1, R), Card(2, B)]))
        self.assertFalse(is_run([]))


class TestSlotStackToCollectionRule(unittest.TestCase):
    def test_given_empty_collection_when_run_touches_an_end_then_accepted(self):
        self.assertTrue(can_add_slot_stack_to_collection(cards(R, 3, 2, 1), [], R, 5))
        self.assertTrue(can_add_slot_stack_to_collection(cards(R, 4, 5), [], R, 5))
        self.assertFalse(can_add_slot_stack_to_collection(cards(R, 2, 3), [], R, 5))

    def test_given_ascending_collection_when_run_starts_at_next_then_accepted(self):
        self.assertTrue(can_add_slot_stack_to_collection(cards(R, 3, 4), [1, 2], R, 5))
        self.assertFalse(can_add_slot_stack_to_collection(cards(R, 4, 5), [1, 2], R, 5))

    def test_given_descending_collection_when_run_ends_at_previous_then_accepted(self):
        self.assertTrue(can_add_slot_stack_to_collection(cards(B, 3, 4), [5], B, 5))
        self.assertFalse(can_add_slot_stack_to_collection(cards(B, 2, 3), [5], B, 5))

    def test_given_wrong_color_or_empty_stack_then_rejected(self):
        self.assertFalse(can_add_slot_stack_to_collection(cards(B, 1, 2), [], R, 5))
        self.assertFalse(can_add_slot_stack_to_collection([], [], R, 5))

    def test_given_single_card_stack_then_single_card_rule_applies(self):
        self.assertTrue(can_add_slot_stack_to_collection(cards(R, 2), [1], R, 5))
        self.assertFalse(can_add_slot_stack_to_collection(cards(R, 3), [1], R, 5))


class TestGridUnlocks(unittest.TestCase):
    def _grid(self, rows):
        layout = tuple(
            tuple(tuple(Card(int(lbl[1:]), CardColor.parse(lbl[0])) for lbl in cell.split()) for cell in row)
            for row in rows
        )
        return Grid.from_layout(layout)

    def test_given_empty_bottom_row_when_unlocking_then_first_occupied_row_from_bottom_unlocks(self):
        grid = self._grid([
            ["R1", "", "B1"],
            ["", "G1", ""],
            ["", "", ""],
        ])
        grid.unlock_bottom_row()
        self.assertEqual(grid.unlocked_mask(), (
            (False, False, False),
            (False, True, False),
            (False, False, False),
        ))

    def test_given_corner_cell_when_unlocking_adjacent_then_no_wrap_around(self):
        grid = self._grid([
            ["R1", "R2", "R3"],
            ["R4", "R5", "B1"],
        ])
        grid.unlock_adjacent(0, 0)
        self.assertEqual(grid.unlocked_mask(), ((False, True, False), (True, False, False)))

    def test_given_empty_cell_above_when_unlocking_above_then_nothing_changes(self):
        grid = self._grid([["", "R2"], ["R1", "R3"]])
        grid.unlock_above(1, 0)
        grid.unlock_above(1, 1)
        self.assertEqual(grid.unlocked_mask(), ((False, True), (False, False)))

    def test_given_ragged_layout_when_building_then_value_error(self):
        with self.assertRaises(ValueError):
            self._grid([["R1", "R2"], ["R3"]])

    def test_given_grid_when_copied_then_changes_do_not_leak(self):
        grid = self._grid([["R1 R2", ""]])
        clone = grid.copy()
        clone.cell(0, 0).stack.pop()
        clone.cell(0, 1).unlocked = True
        self.assertEqual(len(grid.cell(0, 0).stack), 2)
        self.assertFalse(grid.cell(0, 1).unlocked)
        self.assertNotEqual(grid, clone)

    def test_given_grid_when_rendered_then_locked_and_stack_heights_are_shown(self):
        grid = self._grid([["R1 B2", "G3"]])
        grid.cell(0, 1).unlocked = True
        text = grid.pretty(selected=(0, 1))
        self.assertIn("(B2:2)", text)
        self.assertIn("<G3>", text)


if __name__ == "__main__":
    unittest.main(verbosity=2)

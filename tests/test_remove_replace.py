import unittest
from decimal import Decimal

from graphpatch.errors import InvalidPathError, UnknownPropertyError, ValueConversionError
from graphpatch.evaluator import JsonLateObjectEvaluator
from graphpatch.operations import RemoveOperation, ReplaceOperation
from graphpatch.patch import apply_operations
from tests.domain import Receipt, frodo, todos


class TestRemoveOperation(unittest.TestCase):
    def test_remove_list_element_shifts_left(self) -> None:
        items = todos()
        apply_operations([RemoveOperation("/1")], items)
        self.assertEqual([t.description for t in items], ["A", "C"])

    def test_remove_map_entry(self) -> None:
        p = frodo()
        apply_operations([RemoveOperation("/scores/stealth")], p)
        self.assertEqual(p.scores, {})

    def test_remove_record_property_clears_it(self) -> None:
        p = frodo()
        apply_operations([RemoveOperation("/lastName")], p)
        self.assertIsNone(p.last_name)
        self.assertEqual(p.first_name, "Frodo")

    def test_remove_missing_map_entry(self) -> None:
        with self.assertRaises(InvalidPathError):
            apply_operations([RemoveOperation("/scores/charm")], frodo())

    def test_remove_out_of_bounds(self) -> None:
        items = todos()
        with self.assertRaises(InvalidPathError):
            apply_operations([RemoveOperation("/3")], items)
        self.assertEqual(len(items), 3)

    def test_remove_append_token(self) -> None:
        with self.assertRaises(InvalidPathError):
            apply_operations([RemoveOperation("/todos/-")], frodo())

    def test_remove_root(self) -> None:
        with self.assertRaises(InvalidPathError):
            apply_operations([RemoveOperation("")], {"a": 1})

    def test_remove_from_tuple(self) -> None:
        doc = {"pair": (1, 2)}
        with self.assertRaises(InvalidPathError):
            apply_operations([RemoveOperation("/pair/0")], doc)
        self.assertEqual(doc["pair"], (1, 2))


class TestReplaceOperation(unittest.TestCase):
    def test_replace_record_property(self) -> None:
        p = frodo()
        apply_operations([ReplaceOperation("/firstName", "Sam")], p)
        self.assertEqual(p.first_name, "Sam")

    def test_replace_list_element(self) -> None:
        doc = {"foo": ["bar", "baz"]}
        apply_operations([ReplaceOperation("/foo/0", "qux")], doc)
        self.assertEqual(doc, {"foo": ["qux", "baz"]})

    def test_replace_requires_existing_map_entry(self) -> None:
        p = frodo()
        with self.assertRaises(InvalidPathError):
            apply_operations([ReplaceOperation("/scores/charm", 1)], p)
        self.assertNotIn("charm", p.scores)

    def test_replace_does_not_accept_length_index(self) -> None:
        with self.assertRaises(InvalidPathError):
            apply_operations([ReplaceOperation("/3", None)], todos())

    def test_replace_does_not_initialize_unset_list(self) -> None:
        p = frodo()
        with self.assertRaises(InvalidPathError):
            apply_operations([ReplaceOperation("/nicknames/-", "Mr. Underhill")], p)
        self.assertIsNone(p.nicknames)

    def test_replace_with_late_value_into_map_value_type(self) -> None:
        p = frodo()
        apply_operations([ReplaceOperation("/scores/stealth", JsonLateObjectEvaluator(10))], p)
        self.assertEqual(p.scores["stealth"], 10)

    def test_replace_with_unreadable_late_value(self) -> None:
        p = frodo()
        with self.assertRaises(ValueConversionError) as cm:
            apply_operations([ReplaceOperation("/scores/stealth", JsonLateObjectEvaluator("sneaky"))], p)
        self.assertIsNotNone(cm.exception.__cause__)
        self.assertEqual(p.scores["stealth"], 7)

    def test_replace_pydantic_model_field_by_alias(self) -> None:
        receipt = Receipt(saleItem="lembas", amount=Decimal("1.50"))
        apply_operations(
            [
                ReplaceOperation("/saleItem", "cram"),
                ReplaceOperation("/amount", JsonLateObjectEvaluator("2.25")),
            ],
            receipt,
        )
        self.assertEqual(receipt.sale_item, "cram")
        self.assertEqual(receipt.amount, Decimal("2.25"))

    def test_replace_by_internal_name_of_aliased_field(self) -> None:
        receipt = Receipt(saleItem="lembas", amount=Decimal("1.50"))
        with self.assertRaises(UnknownPropertyError):
            apply_operations([ReplaceOperation("/sale_item", "cram")], receipt)


if __name__ == "__main__":
    unittest.main()

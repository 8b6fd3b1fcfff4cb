import unittest
from decimal import Decimal
from typing import Any, Optional

from pydantic import ValidationError

from graphpatch.errors import UnknownPropertyError, ValueConversionError
from graphpatch.evaluator import JsonLateObjectEvaluator, TypedValue, as_evaluator
from tests.domain import Address, Meal, Person, Receipt, Todo


class TestJsonLateObjectEvaluator(unittest.TestCase):
    def test_reads_dataclass(self) -> None:
        todo = JsonLateObjectEvaluator({"id": 7, "description": "x", "items": ["a"]}).evaluate(Todo)
        self.assertEqual(todo, Todo(7, "x", False, ["a"]))

    def test_reads_nested_external_names(self) -> None:
        node = {
            "firstName": "Sam",
            "address": {"street": "Bagshot Row", "zipCode": "00003"},
            "todos": [{"description": "Garden"}],
        }
        person = JsonLateObjectEvaluator(node).evaluate(Person)
        self.assertEqual(person.first_name, "Sam")
        self.assertEqual(person.address, Address(street="Bagshot Row", zip_code="00003"))
        self.assertEqual(person.todos, [Todo(description="Garden")])

    def test_reads_list_of_records(self) -> None:
        todos = JsonLateObjectEvaluator([{"id": 1}, {"id": 2}]).evaluate(list[Todo])
        self.assertEqual([t.id for t in todos], [1, 2])

    def test_reads_pydantic_model_by_alias(self) -> None:
        receipt = JsonLateObjectEvaluator({"saleItem": "lembas", "amount": "1.50"}).evaluate(Receipt)
        self.assertEqual(receipt.sale_item, "lembas")
        self.assertEqual(receipt.amount, Decimal("1.50"))

    def test_optional_target_accepts_null(self) -> None:
        self.assertIsNone(JsonLateObjectEvaluator(None).evaluate(Optional[Address]))

    def test_untyped_target_returns_copy_of_node(self) -> None:
        node = {"a": [1, 2]}
        value = JsonLateObjectEvaluator(node).evaluate(Any)
        self.assertEqual(value, node)
        self.assertIsNot(value, node)

    def test_unreadable_node_chains_cause(self) -> None:
        with self.assertRaises(ValueConversionError) as cm:
            JsonLateObjectEvaluator("many").evaluate(int)
        self.assertIsInstance(cm.exception.__cause__, ValidationError)
        self.assertIn("ValidationError", cm.exception.to_dict()["cause"])

    def test_hidden_property_cannot_be_set_from_json(self) -> None:
        with self.assertRaises(UnknownPropertyError) as cm:
            JsonLateObjectEvaluator({"firstName": "Sam", "password_hash": "secret"}).evaluate(Person)
        self.assertEqual(cm.exception.property_name, "password_hash")

    def test_renamed_property_cannot_be_set_by_internal_name(self) -> None:
        with self.assertRaises(UnknownPropertyError):
            JsonLateObjectEvaluator({"first_name": "Sam"}).evaluate(Person)
        with self.assertRaises(UnknownPropertyError):
            JsonLateObjectEvaluator({"sale_item": "lembas", "amount": 1}).evaluate(Receipt)

    def test_unknown_nested_key_is_rejected(self) -> None:
        with self.assertRaises(UnknownPropertyError):
            JsonLateObjectEvaluator([{"description": "x", "owner": "Sam"}]).evaluate(list[Todo])

    def test_registered_class_cannot_be_read_from_json(self) -> None:
        with self.assertRaises(ValueConversionError):
            JsonLateObjectEvaluator({"name": "stew", "price": 3}).evaluate(Meal)

    def test_evaluates_independently_for_each_target(self) -> None:
        late = JsonLateObjectEvaluator(3)
        self.assertEqual(late.evaluate(float), 3.0)
        self.assertEqual(late.evaluate(Decimal), Decimal(3))


class TestTypedValue(unittest.TestCase):
    def test_assignable_value_is_returned_unchanged(self) -> None:
        todo = Todo(1, "A")
        self.assertIs(TypedValue(todo).evaluate(Todo), todo)
        self.assertIs(TypedValue(todo).evaluate(Any), todo)

    def test_int_widens_to_float(self) -> None:
        self.assertEqual(TypedValue(2).evaluate(float), 2)

    def test_bool_is_not_an_int(self) -> None:
        with self.assertRaises(ValueConversionError):
            TypedValue(True).evaluate(int)

    def test_null_needs_optional_target(self) -> None:
        self.assertIsNone(TypedValue(None).evaluate(Optional[str]))
        with self.assertRaises(ValueConversionError):
            TypedValue(None).evaluate(str)

    def test_generic_targets_check_container_kind(self) -> None:
        self.assertEqual(TypedValue(["a"]).evaluate(list[str]), ["a"])
        with self.assertRaises(ValueConversionError):
            TypedValue({"a": 1}).evaluate(list[str])

    def test_as_evaluator(self) -> None:
        late = JsonLateObjectEvaluator(1)
        self.assertIs(as_evaluator(late), late)
        self.assertEqual(as_evaluator(5), TypedValue(5))


if __name__ == "__main__":
    unittest.main()

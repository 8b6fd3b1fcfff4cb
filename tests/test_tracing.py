import unittest

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import StatusCode

from graphpatch.errors import PatchConflictError
from graphpatch.observability import tracing
from graphpatch.operations import AddOperation, TestOperation
from graphpatch.patch import Patch


class TestPatchTracing(unittest.TestCase):
    def setUp(self) -> None:
        tracing.init_tracing(enabled=True, service_name="graphpatch-test")
        provider = trace.get_tracer_provider()
        if not isinstance(provider, TracerProvider):
            self.skipTest("a different tracer provider is installed")
        self.exporter = InMemorySpanExporter()
        provider.add_span_processor(SimpleSpanProcessor(self.exporter))

    def tearDown(self) -> None:
        self.exporter.shutdown()

    def _apply_spans(self):
        return [s for s in self.exporter.get_finished_spans() if s.name == tracing.APPLY_SPAN]

    def test_apply_records_span(self) -> None:
        Patch([AddOperation("/a", 1), AddOperation("/b", 2)]).apply({})
        spans = self._apply_spans()
        self.assertEqual(len(spans), 1)
        self.assertEqual(spans[0].attributes["graphpatch.operations"], 2)
        self.assertEqual(spans[0].attributes["graphpatch.target_type"], "dict")
        self.assertNotEqual(spans[0].status.status_code, StatusCode.ERROR)

    def test_failed_apply_marks_span(self) -> None:
        with self.assertRaises(PatchConflictError):
            Patch([AddOperation("/b", 2), TestOperation("/a", 2)]).apply({"a": 1})
        spans = self._apply_spans()
        self.assertEqual(len(spans), 1)
        attrs = spans[0].attributes
        self.assertEqual(spans[0].status.status_code, StatusCode.ERROR)
        self.assertEqual(attrs["graphpatch.error_code"], "TEST_FAILED")
        self.assertEqual(attrs["graphpatch.failed_index"], 1)
        self.assertEqual(attrs["graphpatch.failed_op"], "test")
        self.assertEqual(attrs["graphpatch.failed_path"], "/a")

    def test_trace_ids_inside_span(self) -> None:
        self.assertTrue(tracing.tracing_enabled())
        with tracing.patch_span(operations=0, target=[]) as span:
            ids = tracing.current_trace_ids()
            self.assertIsNotNone(ids)
            self.assertEqual(ids.span_id_hex, f"{span.get_span_context().span_id:016x}")
        self.assertIsNone(tracing.current_trace_ids())


if __name__ == "__main__":
    unittest.main()

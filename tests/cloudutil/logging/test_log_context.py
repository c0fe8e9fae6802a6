"""Tests for cloudutil.logging.context module."""

import asyncio

from cloudutil.logging.context import (
    clear_log_context,
    get_log_context,
    set_log_context,
)


class TestLogContext:
    def setup_method(self):
        clear_log_context()

    def teardown_method(self):
        clear_log_context()

    def test_defaults_are_empty(self):
        assert get_log_context() == {"operation": "", "resource": "", "trace_id": ""}

    def test_set_all_fields(self):
        set_log_context(operation="read", resource="gs://b/o", trace_id="t1")
        assert get_log_context() == {
            "operation": "read",
            "resource": "gs://b/o",
            "trace_id": "t1",
        }

    def test_partial_update_keeps_other_fields(self):
        set_log_context(operation="read", trace_id="t1")
        set_log_context(resource="gs://b/o")

        ctx = get_log_context()
        assert ctx["operation"] == "read"
        assert ctx["trace_id"] == "t1"
        assert ctx["resource"] == "gs://b/o"

    def test_clear(self):
        set_log_context(operation="read", resource="gs://b/o", trace_id="t1")
        clear_log_context()
        assert get_log_context() == {"operation": "", "resource": "", "trace_id": ""}

    def test_isolated_between_tasks(self):
        async def worker(name):
            set_log_context(resource=name)
            await asyncio.sleep(0)
            return get_log_context()["resource"]

        async def main():
            return await asyncio.gather(worker("a"), worker("b"))

        assert asyncio.run(main()) == ["a", "b"]
        assert get_log_context()["resource"] == ""

import logging

import pytest
from sqlalchemy.exc import IntegrityError

from replykit.api.response_helper import send_error_response
from replykit.api.sink import ResponseSink
from replykit.exceptions.base import (
    BadRequestError,
    ConflictError,
    ExternalApiError,
    LicenseEulaRequiredError,
    NotFoundError,
    ResponseError,
)
from replykit.tests.test_fixtures.error_fixtures import make_query_failed_error


def raised(error: BaseException) -> BaseException:
    """Return `error` with a traceback attached, as it is when caught from a handler."""
    try:
        raise error
    except BaseException as caught:
        return caught


class TestEnvelope:
    def test_meta_included_for_license_eula_required_error(self, sink_factory, prod_settings):
        eula_url = "https://example.com/legal/eula/"
        error = LicenseEulaRequiredError("License activation requires EULA acceptance", {"eulaUrl": eula_url})
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.status_code == 400
        assert sink.body == {
            "code": 400,
            "message": "License activation requires EULA acceptance",
            "meta": {"eulaUrl": eula_url},
        }

    def test_regular_error(self, sink_factory, prod_settings):
        sink = sink_factory()

        send_error_response(sink, Exception("Regular error"), settings=prod_settings)

        assert sink.status_code == 500
        assert sink.body == {"code": 0, "message": "Regular error"}
        assert "meta" not in sink.body

    def test_error_without_message(self, sink_factory, prod_settings):
        sink = sink_factory()
        send_error_response(sink, Exception(), settings=prod_settings)
        assert sink.body == {"code": 0, "message": "Unknown error"}

    def test_hint_and_code(self, sink_factory, prod_settings):
        error = BadRequestError("Invalid cron expression", error_code=4001, hint="Use five fields")
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.status_code == 400
        assert sink.body == {"code": 4001, "message": "Invalid cron expression", "hint": "Use five fields"}

    def test_zero_error_code_keeps_default(self, sink_factory, prod_settings):
        error = ResponseError("Upstream rejected the call", http_status_code=502, error_code=0)
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.status_code == 502
        assert sink.body == {"code": 0, "message": "Upstream rejected the call"}

    def test_empty_meta_is_left_out(self, sink_factory, prod_settings):
        error = BadRequestError("Bad", meta={})
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.body == {"code": 400, "message": "Bad"}

    def test_meta_with_non_string_keys_and_hint(self, sink_factory, prod_settings):
        error = BadRequestError("Invalid rows", hint=3, meta={1: "row one", "nested": {"value": None}})
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.status_code == 400
        assert sink.body == {
            "code": 400,
            "message": "Invalid rows",
            "hint": 3,
            "meta": {"1": "row one", "nested": {"value": None}},
        }

    @pytest.mark.asyncio
    async def test_dispatcher_keeps_status_for_loose_meta(self, dispatcher, sink_factory):
        async def handler(request, sink):
            raise ConflictError("Version conflict", meta={2: ["a"]})

        sink = sink_factory()
        await dispatcher.send(handler)(sink.request, sink)

        assert sink.status_code == 409
        assert sink.body == {"code": 409, "message": "Version conflict", "meta": {"2": ["a"]}}

    def test_database_error_uses_driver_message(self, sink_factory, prod_settings):
        error = make_query_failed_error("Connection timeout after 30000ms")
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.status_code == 500
        assert sink.body == {"code": 0, "message": "Connection timeout after 30000ms"}

    def test_rewritten_message_wins(self, sink_factory, prod_settings):
        error = make_query_failed_error('duplicate key value violates unique constraint "k"', code="23505")
        error.message = "There is already an entry with this name"
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.body["message"] == "There is already an entry with this name"


class TestStackTraces:
    def test_attached_in_development(self, sink_factory, dev_settings):
        sink = sink_factory()

        send_error_response(sink, raised(ValueError("kaboom")), settings=dev_settings)

        assert "Traceback" in sink.body["stacktrace"]
        assert "ValueError: kaboom" in sink.body["stacktrace"]

    def test_never_attached_outside_development(self, sink_factory, prod_settings):
        sink = sink_factory()

        send_error_response(sink, raised(ValueError("kaboom")), settings=prod_settings)

        assert "stacktrace" not in sink.body

    def test_exception_line_without_traceback(self, sink_factory, dev_settings):
        sink = sink_factory()

        send_error_response(sink, ValueError("never raised"), settings=dev_settings)

        assert sink.body["stacktrace"] == "ValueError: never raised\n"


class TestDevelopmentLogging:
    def test_domain_error_logged_in_development(self, sink_factory, dev_settings, caplog):
        log = logging.getLogger("replykit.tests.dev")
        with caplog.at_level(logging.ERROR, logger="replykit.tests.dev"):
            send_error_response(sink_factory(), NotFoundError("Workflow not found"), settings=dev_settings, log=log)

        assert any("404 Workflow not found" in record.getMessage() for record in caplog.records)

    def test_domain_error_not_logged_in_production(self, sink_factory, prod_settings, caplog):
        log = logging.getLogger("replykit.tests.prod")
        with caplog.at_level(logging.DEBUG, logger="replykit.tests.prod"):
            send_error_response(sink_factory(), NotFoundError("Workflow not found"), settings=prod_settings, log=log)

        assert caplog.records == []


class TestExternalApiErrors:
    def test_allow_listed_fields_merged(self, sink_factory, prod_settings):
        error = ExternalApiError(
            "Authorization failed",
            description="Token expired",
            http_code="401",
            error_response={"raw": "upstream body"},
        )
        sink = sink_factory()

        send_error_response(sink, error, settings=prod_settings)

        assert sink.status_code == 500
        assert sink.body == {
            "code": 0,
            "message": "Authorization failed",
            "name": "ExternalApiError",
            "description": "Token expired",
            "http_code": "401",
            "level": "warning",
        }

    def test_logged_in_development(self, sink_factory, dev_settings, caplog):
        log = logging.getLogger("replykit.tests.external")
        with caplog.at_level(logging.ERROR, logger="replykit.tests.external"):
            send_error_response(sink_factory(), ExternalApiError("Upstream down"), settings=dev_settings, log=log)

        messages = [record.getMessage() for record in caplog.records]
        assert any("ExternalApiError" in m and "Upstream down" in m for m in messages)


class TestFormTriggerPages:
    @pytest.mark.parametrize("path", ["/form/abc-123", "/form-test/abc-123", "/webhook/n8n-form-trigger/abc"])
    def test_404_renders_not_found_page(self, sink_factory, prod_settings, path):
        sink = sink_factory(path)

        send_error_response(sink, NotFoundError("Webhook not registered"), settings=prod_settings)

        response = sink.to_response()
        assert response.status_code == 404
        assert response.media_type == "text/html"
        assert b"Problem loading form" in response.body

    def test_404_test_webhook_flag(self, sink_factory, prod_settings):
        sink = sink_factory("/form-test/abc-123")

        send_error_response(sink, NotFoundError("Webhook not registered"), settings=prod_settings)

        assert b"Execute workflow" in sink.to_response().body

    def test_404_production_form(self, sink_factory, prod_settings):
        sink = sink_factory("/form/abc-123")

        send_error_response(sink, NotFoundError("Webhook not registered"), settings=prod_settings)

        assert b"Execute workflow" not in sink.to_response().body

    def test_404_outside_form_paths_is_json(self, sink_factory, prod_settings):
        sink = sink_factory("/rest/workflows/1")

        send_error_response(sink, NotFoundError("Workflow not found"), settings=prod_settings)

        assert sink.status_code == 404
        assert sink.body == {"code": 404, "message": "Workflow not found"}

    def test_only_first_segment_counts_for_form(self, sink_factory, prod_settings):
        sink = sink_factory("/rest/form/1")

        send_error_response(sink, NotFoundError("Missing"), settings=prod_settings)

        assert sink.body == {"code": 404, "message": "Missing"}

    def test_409_form_waiting_renders_conflict_page(self, sink_factory, prod_settings):
        sink = sink_factory("/form-waiting/42")

        send_error_response(sink, ConflictError("Form already submitted <b>twice</b>"), settings=prod_settings)

        response = sink.to_response()
        # the form-waiting redirect only works with a 200
        assert response.status_code == 200
        assert response.media_type == "text/html"
        assert b"Form already submitted &lt;b&gt;twice&lt;/b&gt;" in response.body

    def test_409_elsewhere_is_json(self, sink_factory, prod_settings):
        sink = sink_factory("/rest/workflows")

        send_error_response(sink, ConflictError("Version conflict"), settings=prod_settings)

        assert sink.status_code == 409
        assert sink.body == {"code": 409, "message": "Version conflict"}

    def test_special_cases_need_domain_error(self, sink_factory, prod_settings):
        sink = sink_factory("/form/abc")

        send_error_response(sink, Exception("Not a domain error"), settings=prod_settings)

        assert sink.status_code == 500
        assert sink.body == {"code": 0, "message": "Not a domain error"}

    def test_without_request(self, prod_settings):
        sink = ResponseSink()

        send_error_response(sink, NotFoundError("Missing"), settings=prod_settings)

        assert sink.body == {"code": 404, "message": "Missing"}


def test_integrity_error_without_rewrite_passes_driver_text(sink_factory, prod_settings):
    # rewriting is the dispatcher's job; the builder formats what it is given
    error = IntegrityError("INSERT ...", (), Exception("UNIQUE constraint failed: workflow_entity.name"))
    sink = sink_factory()

    send_error_response(sink, error, settings=prod_settings)

    assert sink.body["message"] == "UNIQUE constraint failed: workflow_entity.name"

"""
Tests for the structured tracer.
"""

from utils.logging import Tracer, bind_session, clear_session, get_session_id


def test_breadcrumbs_are_bounded():
    tracer = Tracer("tests", max_breadcrumbs=3)

    for index in range(5):
        tracer.breadcrumb("step", f"Step {index}", index=index)

    assert [crumb["data"]["index"] for crumb in tracer.breadcrumbs] == [2, 3, 4]
    assert tracer.breadcrumbs[-1]["category"] == "step"


def test_bound_tracer_shares_breadcrumbs_and_errors():
    tracer = Tracer("tests")
    child = tracer.bind(collector_id="static")

    child.breadcrumb("fetch", "Fetched page")
    try:
        raise ValueError("bad markup")
    except ValueError as e:
        child.capture_error(e, url="https://a.test/")

    assert tracer.breadcrumbs[0]["message"] == "Fetched page"
    assert tracer.errors == [{
        "type": "ValueError",
        "message": "bad markup",
        "context": {"url": "https://a.test/"},
        "timestamp": tracer.errors[0]["timestamp"],
    }]


def test_timer_stops_once():
    timer = Tracer("tests").timing("fetch", url="https://a.test/")

    first = timer.stop()
    second = timer.stop()

    assert first >= 0
    assert first == second


def test_session_binding():
    bind_session("session-9")
    assert get_session_id() == "session-9"

    clear_session()
    assert get_session_id() is None


def test_captured_errors_are_bounded():
    tracer = Tracer("tests", max_errors=2)

    for index in range(4):
        tracer.capture_error(RuntimeError(f"failure {index}"), page=index)

    assert [error["message"] for error in tracer.errors] == ["failure 2", "failure 3"]
    assert tracer.bind(collector_id="static").max_errors == 2

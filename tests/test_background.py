from erphub.services import background
from erphub.services.background import detached, run_detached


def test_detached_swallows_and_logs_failures(monkeypatch):
    events = []
    monkeypatch.setattr(background.logger, "warning", lambda event, **kw: events.append((event, kw)))

    def explode(to):
        raise RuntimeError(f"smtp down for {to}")

    assert detached("welcome_email", explode)("a@example.com") is None
    assert events == [("background_job_failed", {"job": "welcome_email", "error": "smtp down for a@example.com"})]


def test_detached_returns_result_on_success():
    assert detached("sum", lambda a, b: a + b)(2, 3) == 5


def test_run_detached_runs_on_a_daemon_thread():
    seen = []
    thread = run_detached("collect", seen.append, "done")
    thread.join(timeout=5)

    assert thread.daemon
    assert seen == ["done"]

import pytest

from servermon.health import HealthEvaluator, HealthStatus, HttpProbeResult
from servermon.manifest import ServiceRecord
from servermon.supervisor import SupervisorStatus

RUNNING = SupervisorStatus(loaded=True, running=True, pid=42)


def _service(**overrides: object) -> ServiceRecord:
    data: dict[str, object] = {"name": "API", "identifier": "com.test.api", "command": "serve"}
    data.update(overrides)
    return ServiceRecord.model_validate(data)


def _evaluator(*, port: bool = True, http: HttpProbeResult | None = None) -> HealthEvaluator:
    return HealthEvaluator(
        port_probe=lambda _: port,
        http_probe=lambda _: http or HttpProbeResult(healthy=True, status_code=200),
    )


class TestHealthEvaluator:
    def test_not_loaded(self) -> None:
        record = _evaluator().evaluate(_service(port=3000), SupervisorStatus.absent())
        assert record.status is HealthStatus.NOT_INSTALLED
        assert record.port_listening is None

    def test_loaded_not_running(self) -> None:
        status = SupervisorStatus(loaded=True, running=False, last_exit_code=1)
        assert _evaluator().evaluate(_service(), status).status is HealthStatus.STOPPED

    def test_port_not_listening_is_starting(self) -> None:
        record = _evaluator(port=False).evaluate(
            _service(port=3000, healthCheck="http://localhost:3000/health"), RUNNING
        )
        assert record.status is HealthStatus.STARTING
        assert record.port_listening is False

    def test_failing_health_url_is_unhealthy(self) -> None:
        probe = HttpProbeResult(healthy=False, status_code=500)
        record = _evaluator(http=probe).evaluate(
            _service(port=3000, healthCheck="http://localhost:3000/health"), RUNNING
        )
        assert record.status is HealthStatus.UNHEALTHY
        assert record.http_status == 500

    @pytest.mark.parametrize(
        "overrides",
        [{"port": 3000}, {"healthCheck": "http://localhost/"}],
    )
    def test_passing_check_is_healthy(self, overrides: dict[str, object]) -> None:
        record = _evaluator().evaluate(_service(**overrides), RUNNING)
        assert record.status is HealthStatus.HEALTHY

    def test_no_checks_is_running(self) -> None:
        assert _evaluator().evaluate(_service(), RUNNING).status is HealthStatus.RUNNING

    def test_probes_skipped_when_not_running(self) -> None:
        calls: list[int] = []

        def probe(port: int) -> bool:
            calls.append(port)
            return True

        evaluator = HealthEvaluator(port_probe=probe)
        _ = evaluator.evaluate(_service(port=3000), SupervisorStatus.absent())
        assert calls == []

    def test_raising_probes_count_as_failures(self) -> None:
        def broken_port(_: int) -> bool:
            raise RuntimeError("boom")

        def broken_http(_: str) -> HttpProbeResult:
            raise RuntimeError("kaput")

        evaluator = HealthEvaluator(port_probe=broken_port, http_probe=broken_http)

        port_only = evaluator.evaluate(_service(port=3000), RUNNING)
        http_only = evaluator.evaluate(_service(healthCheck="http://localhost/"), RUNNING)

        assert port_only.status is HealthStatus.STARTING
        assert http_only.status is HealthStatus.UNHEALTHY
        assert http_only.http_error == "kaput"

"""
tests/test_health_index.py
───────────────────────────
Tests for the weighted system health score.
"""
from datetime import timedelta

import pytest

from config.alerts import AlertStatus, Severity
from puretrack.analytics.health_index import (
    alert_score,
    compute_alerts_score,
    compute_device_score,
    compute_system_health,
    compute_system_health_from_stores,
    health_status,
)
from puretrack.data.models import DeviceInfo, DeviceStatus, HealthStatus


class TestAlertScore:
    @pytest.mark.parametrize("status,severity,expected", [
        (AlertStatus.RESOLVED, Severity.CRITICAL, 100),
        (AlertStatus.ACKNOWLEDGED, Severity.CRITICAL, 60),
        (AlertStatus.ACTIVE, Severity.ADVISORY, 100),
        (AlertStatus.ACTIVE, Severity.WARNING, 50),
        (AlertStatus.ACTIVE, Severity.CRITICAL, 0),
    ])
    def test_score_table(self, status, severity, expected):
        assert alert_score(status, severity)[0] == expected

    def test_unknown_status_fails_open(self):
        assert alert_score("Snoozed", "Critical") == (100, "Unknown Status")

    def test_unknown_severity_fails_open(self):
        assert alert_score("Active", "Catastrophic")[0] == 100


class TestComponentScores:
    def test_no_alerts_scores_100(self):
        assert compute_alerts_score([]) == (100, [])

    def test_alert_mean(self, make_alert):
        alerts = [
            make_alert(status=AlertStatus.ACTIVE, severity=Severity.WARNING),
            make_alert(status=AlertStatus.RESOLVED, severity=Severity.CRITICAL),
        ]
        score, breakdown = compute_alerts_score(alerts)
        assert score == 75
        assert [e.score for e in breakdown] == [50, 100]

    def test_alert_mean_rounds_half_up(self, make_alert):
        alerts = [
            make_alert(status=AlertStatus.ACTIVE, severity=Severity.WARNING),
            make_alert(status=AlertStatus.ACTIVE, severity=Severity.CRITICAL),
            make_alert(status=AlertStatus.ACTIVE, severity=Severity.ADVISORY),
            make_alert(status=AlertStatus.ACTIVE, severity=Severity.ADVISORY),
        ]
        # (50 + 0 + 100 + 100) / 4 = 62.5 → 63
        assert compute_alerts_score(alerts)[0] == 63

    def test_no_devices_scores_100(self):
        assert compute_device_score(0, 0) == 100

    def test_device_ratio(self):
        assert compute_device_score(3, 4) == 75
        assert compute_device_score(2, 3) == 67


class TestComputeSystemHealth:
    def test_weighted_example(self):
        # 0.6*100 + 0.2*80 + 0.2*100 = 96
        result = compute_system_health(100.0, 4, 5, [])
        assert result.overall_score == 96
        assert result.status == HealthStatus.HEALTHY
        assert result.components.devices.score == 80
        assert result.components.infra.contribution == 60.0

    def test_resolved_critical_does_not_hurt(self, make_alert):
        alerts = [make_alert(status=AlertStatus.RESOLVED, severity=Severity.CRITICAL)]
        result = compute_system_health(100.0, 1, 1, alerts)
        assert result.components.alerts.score == 100
        assert result.overall_score == 100

    def test_active_critical_zeroes_alert_component(self, make_alert):
        result = compute_system_health(100.0, 1, 1, [make_alert()])
        assert result.components.alerts.score == 0
        assert result.overall_score == 80
        assert result.status == HealthStatus.DEGRADED

    def test_components_clamped(self):
        result = compute_system_health(150.0, 1, 1, [])
        assert result.components.infra.score == 100.0
        assert result.overall_score == 100

        result = compute_system_health(-20.0, 0, 1, [])
        assert result.components.infra.score == 0.0
        assert result.overall_score == 20

    def test_breakdown_and_counts(self, make_alert):
        alerts = [make_alert(), make_alert(status=AlertStatus.ACKNOWLEDGED)]
        result = compute_system_health(90.0, 2, 2, alerts)
        assert result.components.alerts.total_alerts == 2
        assert len(result.components.alerts.breakdown) == 2
        assert result.components.devices.online == 2
        assert result.components.devices.total == 2

    def test_unhealthy(self):
        result = compute_system_health(40.0, 0, 10, [])
        assert result.overall_score == 44
        assert result.status == HealthStatus.UNHEALTHY


class TestHealthStatus:
    @pytest.mark.parametrize("score,expected", [
        (100, HealthStatus.HEALTHY),
        (90, HealthStatus.HEALTHY),
        (89, HealthStatus.DEGRADED),
        (60, HealthStatus.DEGRADED),
        (59, HealthStatus.UNHEALTHY),
    ])
    def test_bands(self, score, expected):
        assert health_status(score) == expected


class TestFromStores:
    def test_snapshot(self, registry, alert_store, make_alert, now):
        registry.upsert_device(DeviceInfo(device_id="A", name="A", status=DeviceStatus.ONLINE))
        registry.upsert_device(DeviceInfo(device_id="B", name="B", status=DeviceStatus.OFFLINE))
        alert_store.create_if_absent(make_alert(severity=Severity.WARNING, age=timedelta(hours=1)))

        result = compute_system_health_from_stores(100.0, registry, alert_store)
        # 0.6*100 + 0.2*50 + 0.2*50 = 80
        assert result.overall_score == 80
        assert result.components.devices.online == 1

    def test_scores_every_alert(self, registry, alert_store, make_alert):
        for i in range(100):
            alert_store.create_if_absent(make_alert(device_id=f"D-{i:03d}", age=timedelta(days=2)))
        for i in range(1000):
            alert_store.create_if_absent(
                make_alert(status=AlertStatus.RESOLVED, age=timedelta(minutes=i)),
            )

        result = compute_system_health_from_stores(100.0, registry, alert_store)
        # (100 * 0 + 1000 * 100) / 1100 = 90.9
        assert result.components.alerts.total_alerts == 1100
        assert result.components.alerts.score == 91

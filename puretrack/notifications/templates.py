"""
puretrack/notifications/templates.py
────────────────────────────────────
Subject and HTML body rendering for alert and stale-alert notifications.
"""
from __future__ import annotations

from datetime import UTC, datetime
from html import escape

from config.alerts import PARAMETER_NAMES, PARAMETER_UNITS, SEVERITY_COLORS, Severity
from puretrack.data.models import Alert

FOOTER = "This is an automated alert from PureTrack Water Quality Monitoring System"
STALE_COLOR = SEVERITY_COLORS[Severity.CRITICAL]


def _unit_suffix(alert: Alert) -> str:
    unit = PARAMETER_UNITS[alert.parameter]
    return f" {unit}" if unit else ""


def render_alert_subject(alert: Alert) -> str:
    location = f" - {alert.location}" if alert.location else ""
    return f"[{alert.severity.value}] Water Quality Alert{location} - {PARAMETER_NAMES[alert.parameter]}"


def render_alert_html(alert: Alert, sent_at: datetime | None = None) -> str:
    color = SEVERITY_COLORS[alert.severity]
    sent_at = sent_at or datetime.now(tz=UTC)
    unit = _unit_suffix(alert)
    location = escape(alert.location)

    location_header = (
        f'<p style="margin: 5px 0 0 0; font-size: 14px;">Location: {location}</p>' if location else ""
    )
    location_row = f"<p><strong>Location:</strong> {location}</p>" if location else ""
    threshold_row = (
        f"<p><strong>Threshold:</strong> {alert.threshold_value}{unit}</p>"
        if alert.threshold_value is not None
        else ""
    )

    return f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background: {color}; color: white; padding: 20px; border-radius: 8px 8px 0 0;">
    <h2 style="margin: 0;">Water Quality Alert</h2>
    {location_header}
  </div>
  <div style="background: #f5f5f5; padding: 20px; border-radius: 0 0 8px 8px;">
    <div style="background: white; padding: 20px; border-radius: 8px; margin-bottom: 15px;">
      <h3 style="color: {color}; margin-top: 0;">{alert.severity.value} Alert</h3>
      <p><strong>Device:</strong> {escape(alert.device_name)}</p>
      {location_row}
      <p><strong>Parameter:</strong> {PARAMETER_NAMES[alert.parameter]}</p>
      <p><strong>Current Value:</strong> {alert.current_value:.2f}{unit}</p>
      {threshold_row}
      <p><strong>Time:</strong> {sent_at:%Y-%m-%d %H:%M:%S %Z}</p>
    </div>
    <div style="background: white; padding: 20px; border-radius: 8px; margin-bottom: 15px;">
      <h4 style="margin-top: 0;">Message</h4>
      <p>{escape(alert.message)}</p>
    </div>
    <div style="background: #fff3cd; padding: 20px; border-radius: 8px; border-left: 4px solid #faad14;">
      <h4 style="margin-top: 0;">Recommended Action</h4>
      <p>{escape(alert.recommended_action)}</p>
    </div>
    <p style="color: #666; font-size: 12px; text-align: center;">{FOOTER}</p>
  </div>
</div>
"""


def render_alert_notification(alert: Alert, sent_at: datetime | None = None) -> tuple[str, str]:
    """(subject, body_html) for a newly raised alert."""
    return render_alert_subject(alert), render_alert_html(alert, sent_at)


def render_stale_alert_notification(
    alerts: list[Alert],
    now: datetime,
) -> tuple[str, str]:
    """(subject, body_html) digest of critical alerts left unresolved."""
    count = len(alerts)
    noun, verb = ("alert", "needs") if count == 1 else ("alerts", "need")
    subject = f"[Critical] {count} unresolved water quality {noun} {verb} attention"

    rows = []
    for alert in alerts:
        hours = (now - alert.created_at).total_seconds() / 3600.0
        rows.append(
            "<tr style=\"border-bottom: 1px solid #e0e0e0;\">"
            f"<td style=\"padding: 12px;\">{escape(alert.device_name)}</td>"
            f"<td style=\"padding: 12px;\">{PARAMETER_NAMES[alert.parameter]}</td>"
            f"<td style=\"padding: 12px;\">{alert.current_value:.2f}{_unit_suffix(alert)}</td>"
            f"<td style=\"padding: 12px; color: {STALE_COLOR};\">{hours:.1f} h</td>"
            "</tr>"
        )

    body = f"""
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <div style="background: {STALE_COLOR}; color: white; padding: 20px; border-radius: 8px 8px 0 0;">
    <h2 style="margin: 0;">Unresolved Critical Alerts</h2>
    <p style="margin: 5px 0 0 0; font-size: 14px;">{count} critical {noun} still active</p>
  </div>
  <table style="width: 100%; border-collapse: collapse; background: white;">
    <tr style="background: #fafafa;">
      <th style="padding: 12px; text-align: left;">Device</th>
      <th style="padding: 12px; text-align: left;">Parameter</th>
      <th style="padding: 12px; text-align: left;">Value</th>
      <th style="padding: 12px; text-align: left;">Open for</th>
    </tr>
    {''.join(rows)}
  </table>
  <p style="color: #666; font-size: 12px; text-align: center;">{FOOTER}</p>
</div>
"""
    return subject, body

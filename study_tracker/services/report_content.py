"""Accountability report content: totals, session table, QuickChart bar chart, rendered HTML."""

import json
import urllib.parse
from dataclasses import dataclass, field
from datetime import datetime

from jinja2 import Environment, FileSystemLoader, select_autoescape

from study_tracker.config import QUICKCHART_URL, TEMPLATES_DIR

UNTITLED = "Untitled"

# Bar colours, assigned to topics in order of first appearance
PALETTE = [
    "rgba(54, 162, 235, 0.7)",
    "rgba(255, 99, 132, 0.7)",
    "rgba(255, 206, 86, 0.7)",
    "rgba(75, 192, 192, 0.7)",
    "rgba(153, 102, 255, 0.7)",
    "rgba(255, 159, 64, 0.7)",
]

_env = Environment(
    loader=FileSystemLoader(str(TEMPLATES_DIR / "emails")),
    autoescape=select_autoescape(["html"]),
)


@dataclass(frozen=True)
class Report:
    """One rendered accountability report. Built per run, never mutated."""
    display_name: str
    date_label: str
    total_seconds: int
    target_minutes: int
    met: bool
    sessions: tuple = field(default_factory=tuple)
    subject: str = ""
    html: str = ""
    chart_url: str = ""


def format_duration(seconds: int) -> str:
    """Format seconds as ``{h}h {m}m {s}s``, dropping the hour part when zero."""
    seconds = int(seconds)
    h, rest = divmod(seconds, 3600)
    m, s = divmod(rest, 60)
    if h > 0:
        return f"{h}h {m}m {s}s"
    return f"{m}m {s}s"


def session_seconds(session: dict) -> int:
    """Duration of a session row; legacy rows only carry whole minutes."""
    if session.get("duration_seconds"):
        return int(session["duration_seconds"])
    return int((session.get("duration_minutes") or 0) * 60)


def session_topic(session: dict) -> str:
    topic = (session.get("topic_text") or "").strip()
    return topic or UNTITLED


def minutes_rounded(seconds: int) -> int:
    """Round seconds to whole minutes, halves up."""
    return (int(seconds) + 30) // 60


def date_label(day: datetime) -> str:
    """``Oct 19`` style label."""
    return f"{day:%b} {day.day}"


def build_subject(display_name: str, label: str) -> str:
    return f"{display_name}'s Study Report — {label}"


def _clock(epoch_ms) -> str:
    return datetime.fromtimestamp(int(epoch_ms) / 1000).strftime("%I:%M %p")


def _topic_colors(sessions) -> dict[str, str]:
    colors: dict[str, str] = {}
    for s in sessions:
        topic = session_topic(s)
        if topic not in colors:
            colors[topic] = PALETTE[len(colors) % len(PALETTE)]
    return colors


def build_chart_url(sessions, colors: dict[str, str] | None = None) -> str:
    """QuickChart URL for a bar chart of minutes per session, coloured by topic."""
    colors = colors or _topic_colors(sessions)
    background = [colors[session_topic(s)] for s in sessions]
    config = {
        "type": "bar",
        "data": {
            "labels": [_clock(s["start"]) for s in sessions],
            "datasets": [{
                "label": "Minutes Studied",
                "data": [minutes_rounded(session_seconds(s)) for s in sessions],
                "backgroundColor": background,
                "borderColor": [c.replace("0.7", "1.0") for c in background],
                "borderWidth": 1,
            }],
        },
        "options": {
            "scales": {"yAxes": [{"ticks": {"beginAtZero": True}}]},
            "legend": {"display": False},
        },
    }
    encoded = urllib.parse.quote(json.dumps(config, separators=(",", ":")), safe="")
    return f"{QUICKCHART_URL}?c={encoded}"


def _message(display_name: str, met: bool) -> str:
    if met:
        return f"{display_name} crushed it today and hit their study goal! 🔥"
    return (f"{display_name} missed their target today. "
            "Let them know you noticed and help them lock in tomorrow 😓")


def build_report(display_name: str, label: str, total_seconds: int,
                 target_minutes: int, sessions) -> Report:
    """Render the daily report for a non-empty, start-ordered list of sessions."""
    sessions = tuple(sessions)
    if not sessions:
        raise ValueError("Cannot build a report without sessions")

    target_minutes = int(target_minutes or 0)
    met = minutes_rounded(total_seconds) >= target_minutes
    colors = _topic_colors(sessions)
    chart_url = build_chart_url(sessions, colors)

    rows = [
        {
            "time_range": f"{_clock(s['start'])} - {_clock(s.get('end') or s['start'])}",
            "duration": format_duration(session_seconds(s)),
            "topic": session_topic(s),
        }
        for s in sessions
    ]

    html = _env.get_template("daily_report.html").render(
        display_name=display_name,
        date_label=label,
        total_time=format_duration(total_seconds),
        target_minutes=target_minutes,
        met=met,
        message=_message(display_name, met),
        rows=rows,
        chart_url=chart_url,
        legend=list(colors.items()),
    )

    return Report(
        display_name=display_name,
        date_label=label,
        total_seconds=int(total_seconds),
        target_minutes=target_minutes,
        met=met,
        sessions=sessions,
        subject=build_subject(display_name, label),
        html=html,
        chart_url=chart_url,
    )

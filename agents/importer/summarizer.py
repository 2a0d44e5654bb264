"""Plain-text summaries of parse results."""

from datetime import datetime

from .models import ParseResult


CONFIDENCE_MARKERS = {"high": "", "medium": " (approx.)", "low": " (unverified)"}


def quick_summary(result: ParseResult) -> str:
    """Render a ParseResult as a short markdown-ish day list."""
    lines = []

    lines.append(f"# Imported itinerary: {result.activity_count} activities, {len(result.locations)} places")
    if result.detected_gmt_offset:
        zone = f" ({result.detected_timezone})" if result.detected_timezone else ""
        lines.append(f"**Timezone:** {result.detected_gmt_offset}{zone}")

    for day in result.days:
        heading = datetime.strptime(day.date, "%Y-%m-%d").strftime("%A, %B %d")
        if day.title:
            heading += f" - {day.title}"
        lines.append(f"\n## {heading}")
        for activity in day.activities:
            location = result.location_by_id(activity.location_id)
            marker = CONFIDENCE_MARKERS.get(location.confidence, "") if location else ""
            lines.append(f"- {activity.start_time}-{activity.end_time} **{activity.location_name}**{marker}")
            if activity.notes:
                lines.append(f"  - {activity.notes}")

    if result.warnings:
        lines.append("\n## Warnings")
        lines.extend(f"- {warning}" for warning in result.warnings)

    if result.suggestions:
        lines.append("\n## Suggestions")
        lines.extend(f"- {suggestion}" for suggestion in result.suggestions)

    return "\n".join(lines)

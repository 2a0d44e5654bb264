"""Command-line interface for the itinerary importer."""

import argparse
import json
import logging
import os
import sys
from pathlib import Path

from .errors import ExtractionServiceError, ItineraryParseError
from .handler import MIN_TEXT_LENGTH
from .local_parser import LocalItineraryParser
from .models import TripContext
from .sources import extract_text
from .summarizer import quick_summary


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Turn an itinerary export into a day-by-day schedule",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Parse a TripIt text export with the rule-based parser
  itinerary-import tripit.txt --year 2025

  # Parse an email or chat transcript with Claude
  itinerary-import notes.txt --ai --destination "Kuala Lumpur, Malaysia"

  # Save the structured result
  itinerary-import tripit.pdf --json parsed.json
        """,
    )

    parser.add_argument(
        "input_file",
        type=str,
        help="Itinerary file (.txt, .md, .pdf, .xlsx, .xls or .docx)",
    )

    parser.add_argument(
        "--ai",
        action="store_true",
        help="Use Claude instead of the rule-based parser",
    )

    parser.add_argument(
        "--json",
        type=str,
        metavar="OUTPUT_PATH",
        help="Export the parse result as JSON",
    )

    parser.add_argument(
        "--year",
        type=int,
        help="Year the trip starts in (default: this year)",
    )

    parser.add_argument(
        "--destination",
        type=str,
        help="Trip destination, used to scope geocoding",
    )

    parser.add_argument(
        "--travelers",
        type=str,
        help='Who is travelling, e.g. "2 adults, 1 toddler"',
    )

    parser.add_argument(
        "--api-key",
        type=str,
        help="Anthropic API key (or set ANTHROPIC_API_KEY env var)",
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=os.environ.get("LOG_LEVEL", "INFO"),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input_file)
    if not input_path.exists():
        print(f"Error: File not found: {input_path}", file=sys.stderr)
        return 1

    try:
        text = extract_text(input_path)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if len(text) < MIN_TEXT_LENGTH:
        print("Error: This doesn't look like a full itinerary.", file=sys.stderr)
        return 1

    trip_context = TripContext(
        name=input_path.stem,
        destination=args.destination,
        start_date=f"{args.year}-01-01" if args.year else None,
        traveler_info=args.travelers,
    )

    try:
        if args.ai:
            from .parser import ClaudeItineraryParser
            itinerary_parser = ClaudeItineraryParser(api_key=args.api_key)
        else:
            itinerary_parser = LocalItineraryParser()
        print(f"Parsing {input_path.name}...")
        result = itinerary_parser.parse_text(text, trip_context)
    except (ItineraryParseError, ExtractionServiceError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(quick_summary(result))

    if args.json:
        output_path = Path(args.json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w") as f:
            json.dump(result.to_dict(), f, indent=2)
        print(f"JSON data saved to: {args.json}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

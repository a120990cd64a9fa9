"""
Command-Line Interface for Affinity Recs
========================================

Usage:
    python -m affinity_recs.cli <target_user_id> [options]

Options:
    --name              Target display name (default: the user ID)
    --candidate, -c     Candidate as ID or ID:NAME (repeatable)
    --candidates-file   JSON list of candidate objects
    --range, -r         4-weeks, 6-months, lifetime or today (default: 4-weeks)
    --p                 RBO persistence (default: 0.99)
    --delay             Seconds between candidates (default: 1.0)
    --output, -o        Output file path (default: stdout)
    --format            Output format: json, csv or simple (default: json)
    --verbose, -v       Verbose logging

Examples:
    python -m affinity_recs.cli 000000001 -c 123:alice -c 456:bob -r lifetime
    python -m affinity_recs.cli 000000001 --candidates-file server.json --format simple
"""

import argparse
import json
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from .affinity import AffinityAggregator, AffinityOutput
from .candidates import Candidate, StatsUser
from .config import (
    CATEGORIES,
    DEFAULT_AFFINITY_CONFIG,
    DEFAULT_RANGE_CHOICE,
    OUTPUT_FORMAT,
    RANGE_CHOICES,
    PacNormalization,
)
from .errors import AffinityError, EmptyCandidateSetError
from .statsfm_client import StatsfmClient

logger = logging.getLogger("affinity_recs.cli")


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='affinity_recs',
        description='Music taste affinity between stats.fm users',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s 000000001 -c 123:alice -c 456:bob
  %(prog)s 000000001 --candidates-file server.json -r 6-months --format simple

Environment Variables:
  STATSFM_API_URL          API root (default: https://api.stats.fm/api/v1)
  STATSFM_API_KEY          Optional API key
  STATSFM_TIMEOUT_SECONDS  Per-request timeout
        """
    )

    parser.add_argument('target', type=str, help='stats.fm user ID of the target')
    parser.add_argument('--name', type=str, default=None, help='Target display name')

    parser.add_argument(
        '-c', '--candidate',
        action='append',
        default=[],
        metavar='ID[:NAME]',
        help='Candidate user, repeat for several'
    )
    parser.add_argument(
        '--candidates-file',
        type=str,
        default=None,
        help='JSON file with a list of {"user_id", "display_name", "profile_url", "can_compare"}'
    )

    parser.add_argument(
        '-r', '--range',
        choices=sorted(RANGE_CHOICES),
        default=DEFAULT_RANGE_CHOICE,
        help=f'Lookback range (default: {DEFAULT_RANGE_CHOICE})'
    )
    parser.add_argument(
        '--p',
        type=float,
        default=DEFAULT_AFFINITY_CONFIG.rbo_p,
        help=f'RBO persistence in (0, 1) (default: {DEFAULT_AFFINITY_CONFIG.rbo_p})'
    )
    parser.add_argument(
        '--delay',
        type=float,
        default=DEFAULT_AFFINITY_CONFIG.candidate_delay_seconds,
        help='Seconds to wait between candidates'
    )
    parser.add_argument(
        '--normalization',
        choices=[n.value for n in PacNormalization],
        default=DEFAULT_AFFINITY_CONFIG.pac_normalization.value,
        help='PAC rank-difference denominator (default: longest)'
    )

    parser.add_argument('-o', '--output', type=str, default=None,
                        help='Output file path (default: print to stdout)')
    parser.add_argument('--format', type=str, choices=['json', 'csv', 'simple'],
                        default=OUTPUT_FORMAT, help=f'Output format (default: {OUTPUT_FORMAT})')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')

    return parser


def parse_candidate(value: str) -> Candidate:
    """Parse an ID or ID:NAME argument."""
    user_id, _, name = value.partition(':')
    user_id = user_id.strip()
    if not user_id:
        raise ValueError(f"Invalid candidate {value!r}")
    return Candidate(user_id=user_id, display_name=name.strip() or user_id)


def load_candidates(path: str) -> List[Candidate]:
    """Load candidates from a JSON list of objects."""
    with open(path, 'r', encoding='utf-8') as f:
        data = json.load(f)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a JSON list")

    candidates = []
    for entry in data:
        if not isinstance(entry, dict) or 'user_id' not in entry:
            raise ValueError(f"{path}: every candidate needs a user_id")
        user_id = str(entry['user_id'])
        candidates.append(Candidate(
            user_id=user_id,
            display_name=entry.get('display_name') or user_id,
            profile_url=entry.get('profile_url', ''),
            can_compare=bool(entry.get('can_compare', True)),
        ))
    return candidates


def format_output(result: AffinityOutput, fmt: str) -> str:
    """Format affinity output based on requested format."""
    if fmt == 'json':
        return result.to_json(indent=2)

    ranked = result.ranked()

    if fmt == 'csv':
        header = ['rank', 'user_id', 'display_name']
        header += [f'pac_{c}' for c in CATEGORIES] + [f'rbo_{c}' for c in CATEGORIES]
        lines = [','.join(header)]
        for r in ranked:
            name = r.candidate.display_name.replace('"', '""')
            row = [str(r.overall_rank), r.candidate.user_id, f'"{name}"']
            row += [str(r.scores[c].pac_percent) if c in r.scores else '' for c in CATEGORIES]
            row += [str(r.scores[c].rbo_percent) if c in r.scores else '' for c in CATEGORIES]
            lines.append(','.join(row))
        return '\n'.join(lines)

    lines = [
        f"{result.target.display_name}'s {result.range_label} Affinities",
        "-" * 50,
    ]
    for r in ranked:
        pac = ', '.join(f"{r.scores[c].pac_percent}% {c}" for c in r.scores)
        rbo = ', '.join(f"{r.scores[c].rbo_percent}% {c}" for c in r.scores)
        lines.append(f"{r.overall_rank:2}. {r.candidate.display_name}")
        lines.append(f"    Method 1: {pac}")
        lines.append(f"    Method 2: {rbo}")
        lines.append("")
    for s in result.skipped:
        lines.append(f"Skipped {s.candidate.display_name}: {s.reason}")
    if result.cancelled:
        lines.append("Run was cancelled before every user was compared.")
    return '\n'.join(lines)


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="[%(levelname)s] %(message)s",
    )

    try:
        candidates = [parse_candidate(c) for c in args.candidate]
        if args.candidates_file:
            candidates.extend(load_candidates(args.candidates_file))

        config = replace(
            DEFAULT_AFFINITY_CONFIG,
            rbo_p=args.p,
            candidate_delay_seconds=args.delay,
            pac_normalization=PacNormalization(args.normalization),
        )
        target = StatsUser(user_id=args.target, display_name=args.name or args.target)
        aggregator = AffinityAggregator(client=StatsfmClient(), config=config)

        def progress(candidate: Candidate, index: int, total: int):
            logger.info("Fetching data for %s (%d/%d)...", candidate.display_name, index + 1, total)

        result = aggregator.run(target, args.range, candidates, on_progress=progress)
        output = format_output(result, args.format)

        if args.output:
            with open(args.output, 'w', encoding='utf-8') as f:
                f.write(output)
            print(f"Affinities saved to: {args.output}")
        else:
            print(output)
        return 0

    except EmptyCandidateSetError:
        print("No other stats.fm users to compare with.")
        return 0
    except (AffinityError, ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        if args.verbose:
            logger.exception("Affinity run failed")
        return 1


if __name__ == '__main__':
    sys.exit(main())

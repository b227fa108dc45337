"""Command-line water potability check."""

import argparse
import asyncio
import json
import sys
from typing import Dict, List, Optional

from potability.client import PredictionClient
from potability.config import ClientConfig, load_policy, store_path
from potability.logging_config import configure_logging
from potability.orchestrator import PredictionOrchestrator
from potability.parameters import SAMPLE_GOOD_WATER, SAMPLE_POOR_WATER, display_name
from potability.storage import KeyValueStore, LastInputCache
from potability.validation import all_passed, format_number_for_display

EXIT_OK = 0
EXIT_INVALID_INPUT = 1
EXIT_REMOTE_FAILURE = 2


def parse_values(pairs: List[str]) -> Dict[str, str]:
    """Turn repeated ``name=raw`` arguments into a form dict."""
    values = {}
    for pair in pairs:
        name, sep, raw = pair.partition("=")
        if not sep:
            raise argparse.ArgumentTypeError(f"expected name=value, got {pair!r}")
        values[name.strip().lower()] = raw
    return values


def positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected an integer, got {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Check drinking water potability")
    parser.add_argument("--sample", choices=["good", "poor"], help="Start from a sample measurement set")
    parser.add_argument("--value", action="append", default=[], metavar="NAME=VALUE",
                        help="Parameter value (repeatable), e.g. --value ph=7.2")
    parser.add_argument("--last", action="store_true", help="Start from the last validated input")
    parser.add_argument("--base-url", help="Prediction API base URL")
    parser.add_argument("--max-attempts", type=positive_int, help="Attempts before giving up on the API")
    parser.add_argument("--store", help="Path of the local key-value store")
    parser.add_argument("--json", action="store_true", help="Print the raw response document")
    parser.add_argument("--log-level", default="WARNING")
    return parser


def render(orchestrator: PredictionOrchestrator) -> str:
    response = orchestrator.current_response
    lines = [f"{'='*60}"]
    if response.success:
        p = response.prediction
        lines.append(f"Status: {p.status} | Potable: {'yes' if p.is_potable else 'no'}")
        lines.append(f"Score: {p.potability_score:.0%} | Confidence: {p.confidence:.0%} | Risk: {p.risk_level.value}")
        if response.recommendation:
            lines.append(f"\n{response.recommendation}")
        if response.model_info:
            lines.append(f"Model: {response.model_info.model_type}")
    else:
        lines.append(f"Error: {response.error}")
        for detail in response.details or []:
            lines.append(f"  - {detail}")

    warnings = orchestrator.warnings + (response.warnings if response.success else [])
    if warnings:
        lines.append("\nWarnings:")
        lines.extend(f"  ! {w}" for w in warnings)

    if response.success and orchestrator.last_input is not None:
        lines.append("\nInput:")
        for name, value in orchestrator.last_input.values().items():
            lines.append(f"  {display_name(name):25s}: {format_number_for_display(value)}")
    lines.append(f"{'='*60}")
    return "\n".join(lines)


async def run(args, values: Dict[str, str], client: Optional[PredictionClient] = None) -> int:
    config = ClientConfig.from_env()
    if args.base_url:
        config.base_url = args.base_url
    if args.max_attempts:
        config.max_attempts = args.max_attempts

    cache = LastInputCache(KeyValueStore(args.store or store_path()))
    client = client or PredictionClient(config)
    orchestrator = PredictionOrchestrator(client, cache, policy=load_policy())

    form: Dict[str, object] = {}
    if args.last and orchestrator.load_last_input() is not None:
        form.update(orchestrator.form_values())
    if args.sample:
        form.update(SAMPLE_GOOD_WATER if args.sample == "good" else SAMPLE_POOR_WATER)
    form.update(values)

    async with client:
        response = await orchestrator.predict(form)

    if args.json:
        print(json.dumps(response.model_dump(mode="json"), indent=2, ensure_ascii=False))
    else:
        print(render(orchestrator))

    if response.success:
        return EXIT_OK
    if not all_passed(orchestrator.field_results):
        return EXIT_INVALID_INPUT
    return EXIT_REMOTE_FAILURE


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        values = parse_values(args.value)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    configure_logging("potability-cli", args.log_level.upper())
    return asyncio.run(run(args, values))


if __name__ == "__main__":
    sys.exit(main())

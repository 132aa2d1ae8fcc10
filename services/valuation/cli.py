import argparse
import json
import sys

from services.config.env import get_display_config
from services.exports.reports import valuation_md
from services.exports.writers import write_projection
from services.valuation.dcf import (
    DEFAULT_FORM,
    INSUFFICIENT_INPUT_MESSAGE,
    Metric,
    check_horizon,
    parse_inputs,
    project,
    result_to_dict,
)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="python -m services.valuation.cli",
        description="DCF fair value calculator (rates in percent)",
    )
    p.add_argument("--metric", default=DEFAULT_FORM["metric"], choices=[m.value for m in Metric])
    p.add_argument("--years", default=DEFAULT_FORM["projectionYears"])
    p.add_argument("--value", default=DEFAULT_FORM["currentMetricValue"], help="current metric value ($M)")
    p.add_argument("--share-growth", default=DEFAULT_FORM["shareCountGrowthRate"])
    p.add_argument("--metric-growth", default=DEFAULT_FORM["metricGrowthRate"])
    p.add_argument("--terminal-multiple", default=DEFAULT_FORM["terminalMultiple"])
    p.add_argument("--discount-rate", default=DEFAULT_FORM["discountRate"])
    p.add_argument("--price", default=DEFAULT_FORM["currentSharePrice"])
    p.add_argument("--current-multiple", default=DEFAULT_FORM["currentMultiple"])
    p.add_argument("--format", default="md", choices=["md", "json", "csv"])
    return p


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    inputs = parse_inputs({
        "metric": args.metric,
        "projectionYears": args.years,
        "currentMetricValue": args.value,
        "shareCountGrowthRate": args.share_growth,
        "metricGrowthRate": args.metric_growth,
        "terminalMultiple": args.terminal_multiple,
        "discountRate": args.discount_rate,
        "currentSharePrice": args.price,
        "currentMultiple": args.current_multiple,
    })
    try:
        check_horizon(inputs)
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 2
    result = project(inputs)
    if result is None:
        print(INSUFFICIENT_INPUT_MESSAGE, file=sys.stderr)
        return 2

    if args.format == "json":
        print(json.dumps(result_to_dict(result), indent=2))
    elif args.format == "csv":
        sys.stdout.write(write_projection(result))
    else:
        sys.stdout.write(valuation_md(inputs, result, blurred=get_display_config().blur_currency))
    return 0


if __name__ == "__main__":
    sys.exit(main())

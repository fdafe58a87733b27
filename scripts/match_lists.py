"""
Match a standardized product list against a SKU catalog and write a report.

Usage:
    python match_lists.py catalog.txt lines.txt
    python match_lists.py catalog.txt lines.txt --output outputs/lookup.xlsx
    python match_lists.py catalog.txt lines.txt --explain "Realme C75X 256GB 8GB Dourado 4G 725"

Inputs:
    - catalog.txt: one "<product name><TAB><sku>" record per line
    - lines.txt:   one standardized line per line, ending in the cost price

Outputs:
    - Excel workbook (Details / Matched / No Code / Summary) or, for a .csv
      path, the Details view only
    - tab-separated results on stdout with --print
"""

import sys, os
_SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
_PROJECT_ROOT = os.path.join(_SCRIPT_DIR, '..')
sys.path.insert(0, os.path.join(_PROJECT_ROOT, 'src'))
OUTPUT_DIR = os.path.join(_PROJECT_ROOT, 'outputs')

import argparse
import logging
from pathlib import Path

from matcher import MATCH_THRESHOLD, MatcherInputError, coerce_text, explain_match, match_lists
from report import compute_coverage_metrics, export_report_excel, format_results_text, results_to_frame


def _print_progress(current: int, total: int) -> None:
    print(f"  matched {current}/{total} lines", file=sys.stderr)


def _print_explain(line: str, catalog_text: str, threshold: float) -> None:
    info = explain_match(line, catalog_text, threshold=threshold)
    print(f"Line: {info['line']}")
    if info['parsed'] is None:
        print(f"  {info['error']}")
        return
    parsed = info['parsed']
    print(f"  brand={parsed['brand'].value} model={parsed['model_base']!r} "
          f"storage={parsed['storage_gb']} ram={parsed['ram_gb']} "
          f"color={parsed['color'].value if parsed['color'] else '-'} "
          f"network={parsed['network'] or '-'} price={parsed['price_digits']}")
    for cand in info['candidates']:
        print(f"  [{cand['score']:5.1f}] {cand['sku']}  {cand['name']}  "
              f"model={cand['model_match']} storage={cand['storage_match']} "
              f"ram={cand['ram_match']} network={cand['network']} color={cand['color_match']}")
    print(f"  matched: {info['matched']}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument('catalog', type=Path, help='catalog text file (name<TAB>sku)')
    parser.add_argument('lines', type=Path, help='standardized lines text file')
    parser.add_argument('--output', type=Path, default=None,
                        help='report path (.xlsx or .csv), default outputs/lookup_report.xlsx')
    parser.add_argument('--threshold', type=float, default=MATCH_THRESHOLD)
    parser.add_argument('--explain', metavar='LINE', default=None,
                        help='show the scoring breakdown for one line and exit')
    parser.add_argument('--print', dest='print_results', action='store_true',
                        help='print tab-separated results to stdout')
    parser.add_argument('-v', '--verbose', action='store_true')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    catalog_bytes = args.catalog.read_bytes()

    try:
        if args.explain:
            _print_explain(args.explain, coerce_text(catalog_bytes, 'catalog'), args.threshold)
            return 0
        report = match_lists(
            args.lines.read_bytes(), catalog_bytes,
            threshold=args.threshold, progress_callback=_print_progress,
        )
    except MatcherInputError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    metrics = compute_coverage_metrics(report)
    print(f"\nLines matched: {metrics['total_rows']}")
    print(f"  with code: {metrics['matched_count']} ({metrics['matched_rate']}%)")
    print(f"  no code:   {metrics['no_code_count']} ({metrics['no_code_rate']}%)")
    for brand, count in metrics['brand_breakdown'].items():
        print(f"    {brand}: {count}")

    if args.print_results:
        print(format_results_text(report.details))

    output = args.output or Path(OUTPUT_DIR) / 'lookup_report.xlsx'
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == '.csv':
        results_to_frame(report.details).to_csv(output, index=False)
    else:
        export_report_excel(report, output)
    print(f"\nReport written to {output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())

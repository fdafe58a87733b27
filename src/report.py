"""
Tabular views and exports for a MatchReport.

The matching engine returns plain result tuples; this module turns them into
pandas DataFrames for display, coverage metrics for the summary, an Excel
workbook (one sheet per view plus Summary) and tab-separated text.
"""

from typing import Dict, Iterable, List

import pandas as pd

from matcher import MatchReport, MatchResult, detect_brand

RESULT_COLUMNS = ['sku', 'name', 'cost_price', 'score']

SHEET_DETAILS = 'Details'
SHEET_MATCHED = 'Matched'
SHEET_NO_CODE = 'No Code'
SHEET_SUMMARY = 'Summary'


def results_to_frame(results: Iterable[MatchResult]) -> pd.DataFrame:
    """One row per result; cost_price stays a digit string."""
    rows = [
        {
            'sku': r.sku,
            'name': r.name,
            'cost_price': r.cost_price_digits,
            'score': r.score,
        }
        for r in results
    ]
    return pd.DataFrame(rows, columns=RESULT_COLUMNS)


def report_frames(report: MatchReport) -> Dict[str, pd.DataFrame]:
    return {
        SHEET_DETAILS: results_to_frame(report.details),
        SHEET_MATCHED: results_to_frame(report.with_code),
        SHEET_NO_CODE: results_to_frame(report.no_code),
    }


def compute_coverage_metrics(report: MatchReport) -> Dict[str, object]:
    """
    Coverage metrics for a completed match report.

    Returns a dict with:
        total_rows: lines that reached matching (dropped lines are not counted)
        matched_count / matched_rate: results with a SKU
        no_code_count / no_code_rate: results without a SKU
        avg_match_score: average score of matched results
        brand_breakdown: brand -> matched count
    """
    total = len(report.details)
    if total == 0:
        return {'total_rows': 0, 'matched_count': 0, 'matched_rate': 0.0,
                'no_code_count': 0, 'no_code_rate': 0.0,
                'avg_match_score': 0.0, 'brand_breakdown': {}}

    matched = results_to_frame(report.with_code)
    brand_breakdown = {}
    avg_score = 0.0
    if len(matched) > 0:
        brands = matched['name'].map(lambda name: detect_brand(name).value)
        brand_breakdown = {str(k): int(v) for k, v in brands.value_counts().items()}
        avg_score = round(float(matched['score'].mean()), 2)

    return {
        'total_rows': total,
        'matched_count': len(report.with_code),
        'matched_rate': round(len(report.with_code) / total * 100, 1),
        'no_code_count': len(report.no_code),
        'no_code_rate': round(len(report.no_code) / total * 100, 1),
        'avg_match_score': avg_score,
        'brand_breakdown': brand_breakdown,
    }


def _summary_rows(metrics: Dict[str, object]) -> List[Dict[str, object]]:
    rows = []
    for key, value in metrics.items():
        if key == 'brand_breakdown':
            for brand, count in value.items():
                rows.append({'metric': f'matched_{brand.lower()}', 'value': count})
        else:
            rows.append({'metric': key, 'value': value})
    return rows


def export_report_excel(report: MatchReport, target) -> None:
    """
    Write the report to an .xlsx path or binary buffer.

    Sheets: Details, Matched, No Code, Summary.
    """
    with pd.ExcelWriter(target, engine='openpyxl') as writer:
        for sheet_name, frame in report_frames(report).items():
            frame.to_excel(writer, sheet_name=sheet_name, index=False)
        summary = pd.DataFrame(_summary_rows(compute_coverage_metrics(report)), columns=['metric', 'value'])
        summary.to_excel(writer, sheet_name=SHEET_SUMMARY, index=False)


def format_results_text(results: Iterable[MatchResult]) -> str:
    """sku<TAB>name<TAB>cost_price, one result per line."""
    return '\n'.join(f"{r.sku}\t{r.name}\t{r.cost_price_digits}" for r in results)

"""
Data Quality Report
===================

Report card for the monthly brand panel, produced before and after
cleaning so the two can be compared.

Features:
- Schema / completeness / validity / integrity checks
- Changes against a prior report (raw -> cleaned)
- JSON round-trip for the cache and artifact managers
- Snapshot: compact shape summary of any panel
"""

import json
import pandas as pd
from pathlib import Path
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Optional, List

from ..loaders.constants import HIERARCHY_COLS

STATUS_COLORS = {
    '✓': 'background-color: #d4edda',
    '✗': 'background-color: #f8d7da',
    '⚠': 'background-color: #fff3cd',
    'ℹ': 'background-color: #e2e3e5',
}


# =============================================================================
# SNAPSHOT
# =============================================================================

@dataclass
class Snapshot:
    """Shape summary of a panel at one point in the pipeline."""

    name: str
    rows: int
    columns: int
    series: int
    date_min: str
    date_max: str
    n_months: int
    target_zeros_pct: float
    target_nas: int
    duplicates: int

    @classmethod
    def from_df(
        cls,
        df: pd.DataFrame,
        name: str = 'data',
        date_col: str = 'ds',
        target_col: str = 'y',
        id_col: str = 'unique_id'
    ) -> 'Snapshot':
        key_cols = [id_col] if id_col in df.columns else [c for c in HIERARCHY_COLS if c in df.columns]
        series = df[key_cols].drop_duplicates().shape[0] if key_cols else len(df)

        date_min = date_max = 'N/A'
        n_months = 0
        if date_col in df.columns and pd.api.types.is_datetime64_any_dtype(df[date_col]) and len(df):
            lo, hi = df[date_col].min(), df[date_col].max()
            date_min, date_max = str(lo.date()), str(hi.date())
            n_months = (hi.year - lo.year) * 12 + (hi.month - lo.month) + 1

        target_zeros_pct = 0.0
        target_nas = 0
        if target_col in df.columns and pd.api.types.is_numeric_dtype(df[target_col]) and len(df):
            target_zeros_pct = float((df[target_col] == 0).mean() * 100)
            target_nas = int(df[target_col].isna().sum())

        dup_keys = [c for c in key_cols + [date_col] if c in df.columns]
        duplicates = int(df.duplicated(subset=dup_keys).sum()) if dup_keys else 0

        return cls(
            name=name, rows=len(df), columns=df.shape[1], series=series,
            date_min=date_min, date_max=date_max, n_months=n_months,
            target_zeros_pct=target_zeros_pct, target_nas=target_nas,
            duplicates=duplicates,
        )

    def to_dict(self) -> dict:
        return asdict(self)


# =============================================================================
# REPORT
# =============================================================================

@dataclass
class DataQualityReport:
    """
    Structured data quality report card.

    Attributes
    ----------
    checks : pd.DataFrame
        Columns Category, Check, Status, Value, Notes
    summary : dict
        Headline statistics (display strings)
    dataset_name : str
    generated_at : str
    prior_report : DataQualityReport, optional
        For computing changes

    Examples
    --------
    >>> raw_report = data_quality_check(raw_panel, dataset_name='Raw')
    >>> report = data_quality_check(df, dataset_name='Cleaned', prior_report=raw_report)
    >>> report.changes()
    """
    checks: pd.DataFrame
    summary: dict
    dataset_name: str = 'dataset'
    generated_at: str = field(default_factory=lambda: datetime.now().strftime('%Y-%m-%d %H:%M'))
    prior_report: Optional['DataQualityReport'] = None

    def __repr__(self):
        statuses = self.checks['Status'] if 'Status' in self.checks else pd.Series(dtype=str)
        passed = int((statuses == '✓').sum())
        failed = int((statuses == '✗').sum())
        arrow = f"{self.prior_report.dataset_name} → " if self.prior_report else ''
        return f"DataQualityReport({arrow}'{self.dataset_name}': {passed} passed, {failed} failed)"

    def _repr_html_(self):
        return self.table()._repr_html_()

    @property
    def passed(self) -> bool:
        """True when no check failed."""
        return self.blocking_issues().empty

    def blocking_issues(self) -> pd.DataFrame:
        """Only the failing checks."""
        if self.checks.empty:
            return self.checks.copy()
        return self.checks[self.checks['Status'] == '✗'].copy()

    # =========================================================================
    # CHANGES
    # =========================================================================

    def changes(self) -> Optional[pd.DataFrame]:
        """
        Before/after table of the summary metrics shared with the prior
        report. Returns None without a prior report.
        """
        if self.prior_report is None:
            print("ℹ No prior report to compare against.")
            return None

        def as_number(val):
            if isinstance(val, (int, float)):
                return val
            if isinstance(val, str):
                head = val.replace(',', '').split()[0].split('(')[0] if val.strip() else ''
                try:
                    return float(head)
                except ValueError:
                    return None
            return None

        rows = []
        for key in ['Rows', 'Series', 'Months', 'Zero months', 'NAs (target)', 'Duplicates']:
            before = self.prior_report.summary.get(key, '—')
            after = self.summary.get(key, '—')
            if before == '—' and after == '—':
                continue

            b, a = as_number(before), as_number(after)
            if b is not None and a is not None:
                diff = a - b
                change = f"+{diff:,.0f}" if diff > 0 else (f"{diff:,.0f}" if diff < 0 else '—')
            else:
                change = 'Changed' if before != after else '—'

            rows.append({'Metric': key, 'Before': before, 'After': after, 'Δ': change})

        return pd.DataFrame(rows, columns=['Metric', 'Before', 'After', 'Δ'])

    # =========================================================================
    # DISPLAY
    # =========================================================================

    def table(self):
        """Styled report card (for notebooks)."""
        return (self.checks.style
            .apply(lambda row: [STATUS_COLORS.get(row['Status'], '')] * len(row), axis=1)
            .set_properties(**{'text-align': 'left'})
            .set_caption(f"📋 Data Quality: {self.dataset_name}")
            .hide(axis='index')
        )

    def summary_table(self) -> pd.DataFrame:
        return pd.DataFrame([{'Metric': k, 'Value': v} for k, v in self.summary.items()])

    def to_text(self) -> str:
        """Plain-text rendering for logs and the CLI."""
        lines = [f"DATA QUALITY: {self.dataset_name} ({self.generated_at})", '─' * 65]
        for _, c in self.checks.iterrows():
            lines.append(f"  {c['Status']} {c['Category']:<13} {c['Check']:<24} {c['Value']}")
        lines.append('─' * 65)
        for k, v in self.summary.items():
            lines.append(f"  {k:<16} {v}")
        return '\n'.join(lines)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def save(self, path):
        """Save to JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = {
            'dataset_name': self.dataset_name,
            'generated_at': self.generated_at,
            'prior_dataset': self.prior_report.dataset_name if self.prior_report else None,
            'prior_summary': self.prior_report.summary if self.prior_report else None,
            'summary': self.summary,
            'checks': self.checks.to_dict(orient='records'),
        }
        with open(path, 'w') as f:
            json.dump(data, f, indent=2, default=str)

    @classmethod
    def load(cls, path) -> 'DataQualityReport':
        """Load from JSON."""
        with open(Path(path), 'r') as f:
            data = json.load(f)

        prior_report = None
        if data.get('prior_summary') and data.get('prior_dataset'):
            prior_report = cls(
                checks=pd.DataFrame(),
                summary=data['prior_summary'],
                dataset_name=data['prior_dataset'],
            )

        return cls(
            checks=pd.DataFrame(data['checks']),
            summary=data['summary'],
            dataset_name=data['dataset_name'],
            generated_at=data['generated_at'],
            prior_report=prior_report,
        )


def data_quality_check(
    df: pd.DataFrame,
    date_col: str = 'ds',
    target_col: str = 'y',
    id_col: str = 'unique_id',
    dataset_name: str = 'dataset',
    prior_report: Optional[DataQualityReport] = None,
    min_months: int = 24,
) -> DataQualityReport:
    """
    Run data quality checks on a monthly panel.

    Parameters
    ----------
    df : pd.DataFrame
        Panel to check
    date_col, target_col, id_col : str
    dataset_name : str
        Name for the report
    prior_report : DataQualityReport, optional
        Earlier report (for changes())
    min_months : int, default=24
        Series shorter than this are flagged (two seasons for ETS/ARIMA)

    Returns
    -------
    DataQualityReport
    """
    checks: List[dict] = []

    def add(category, check, status, value, notes=''):
        checks.append({
            'Category': category, 'Check': check, 'Status': status,
            'Value': value, 'Notes': notes,
        })

    # --- SCHEMA ---
    for col in [date_col, target_col]:
        present = col in df.columns
        add('Schema', f'Column: {col}', '✓' if present else '✗',
            'Present' if present else 'Missing', 'Required')

    hierarchy_present = [c for c in HIERARCHY_COLS if c in df.columns]
    add('Schema', 'Hierarchy columns',
        '✓' if len(hierarchy_present) == len(HIERARCHY_COLS) else '⚠',
        ', '.join(hierarchy_present) or 'None',
        '' if len(hierarchy_present) == len(HIERARCHY_COLS) else 'Level views need cluster/country/brand')

    if date_col not in df.columns or target_col not in df.columns:
        return DataQualityReport(
            checks=pd.DataFrame(checks),
            summary={'Error': 'Missing required columns'},
            dataset_name=dataset_name,
            prior_report=prior_report,
        )

    date_is_dt = pd.api.types.is_datetime64_any_dtype(df[date_col])
    target_is_num = pd.api.types.is_numeric_dtype(df[target_col])
    add('Schema', f'Type: {date_col}', '✓' if date_is_dt else '✗',
        str(df[date_col].dtype), '' if date_is_dt else 'Use pd.to_datetime()')
    add('Schema', f'Type: {target_col}', '✓' if target_is_num else '✗',
        str(df[target_col].dtype), '' if target_is_num else 'Convert to numeric')

    key_cols = [id_col] if id_col in df.columns else hierarchy_present
    n_rows = len(df)

    # --- COMPLETENESS ---
    na_date = int(df[date_col].isna().sum())
    na_target = int(df[target_col].isna().sum())
    add('Completeness', f'NAs: {date_col}', '✓' if na_date == 0 else '✗',
        f'{na_date:,}', '' if na_date == 0 else 'Dates cannot be null')
    add('Completeness', f'NAs: {target_col}', '✓' if na_target == 0 else 'ℹ',
        f'{na_target:,} ({na_target / n_rows:.1%})' if n_rows else '0',
        '' if na_target == 0 else 'Fill or trim before modelling')

    # --- VALIDITY ---
    if target_is_num:
        n_neg = int((df[target_col] < 0).sum())
        add('Validity', f'{target_col} ≥ 0', '✓' if n_neg == 0 else '⚠',
            f'{n_neg:,} negative', '' if n_neg == 0 else 'Returns/corrections; clip or review')

    if date_is_dt and n_rows:
        not_month_start = int((df[date_col].dropna().dt.day != 1).sum())
        add('Validity', 'Month-start dates', '✓' if not_month_start == 0 else '✗',
            f'{not_month_start:,} off-grid', '' if not_month_start == 0 else 'Normalise to month start')

        n_future = int((df[date_col] > pd.Timestamp.now()).sum())
        add('Validity', 'No future dates', '✓' if n_future == 0 else '⚠',
            f'{n_future:,} future rows', '' if n_future == 0 else 'Sales cannot be observed yet')

    # --- INTEGRITY ---
    n_dups = int(df.duplicated(subset=key_cols + [date_col]).sum()) if key_cols else 0
    add('Integrity', 'No duplicate keys', '✓' if n_dups == 0 else '✗', f'{n_dups:,}',
        '' if n_dups == 0 else 'Sum or drop duplicates')

    n_gappy = n_short = 0
    if date_is_dt and key_cols and n_rows:
        spans = df.groupby(key_cols)[date_col].agg(['min', 'max', 'nunique'])
        expected = (
            (spans['max'].dt.year - spans['min'].dt.year) * 12
            + (spans['max'].dt.month - spans['min'].dt.month) + 1
        )
        n_gappy = int((spans['nunique'] < expected).sum())
        n_short = int((spans['nunique'] < min_months).sum())

        add('Integrity', 'Complete monthly grid', '✓' if n_gappy == 0 else '⚠',
            f'{n_gappy:,} series with gaps', '' if n_gappy == 0 else 'Use fill_missing_months()')
        add('Integrity', f'History ≥ {min_months} months', '✓' if n_short == 0 else 'ℹ',
            f'{n_short:,} short series', '' if n_short == 0 else 'Simple models only')

    # --- SUMMARY ---
    snapshot = Snapshot.from_df(df, dataset_name, date_col, target_col, id_col)
    summary = {
        'Rows': f'{snapshot.rows:,}',
        'Columns': f'{snapshot.columns}',
        'Series': f'{snapshot.series:,}',
        'Date range': f'{snapshot.date_min} → {snapshot.date_max}',
        'Months': f'{snapshot.n_months:,}',
        'Zero months': f'{snapshot.target_zeros_pct:.1f}%',
        'NAs (target)': f'{snapshot.target_nas:,}',
        'Duplicates': f'{snapshot.duplicates:,}',
    }
    if target_is_num and n_rows:
        summary[f'{target_col} total'] = f'{df[target_col].sum():,.0f}'

    return DataQualityReport(
        checks=pd.DataFrame(checks),
        summary=summary,
        dataset_name=dataset_name,
        prior_report=prior_report,
    )


__all__ = ['DataQualityReport', 'Snapshot', 'data_quality_check']

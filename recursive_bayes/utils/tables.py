"""
Plain-text metrics tables for experiment reports.
"""
from typing import Dict, List, Optional

from .log import get_logger

logger = get_logger(__name__)


def format_runtime(seconds: float) -> str:
    """Human-readable runtime: '850.0 ms', '12.3 s' or '2m 05s'."""
    if seconds < 1.0:
        return f"{seconds * 1000:.1f} ms"
    if seconds < 60.0:
        return f"{seconds:.1f} s"
    minutes, secs = divmod(int(round(seconds)), 60)
    return f"{minutes}m {secs:02d}s"


def format_metrics_table(
    metrics: Dict[str, Dict],
    columns: List[str],
    title: str = 'Estimator Comparison',
    float_format: str = '.4f',
    na_string: str = 'N/A',
    label: str = 'Estimator',
) -> str:
    """
    Render a metrics table as text.

    Parameters
    ----------
    metrics : dict
        Row name -> {column_name: value}
    columns : list of str
        Columns to include, in order
    title : str
        Table title
    float_format : str
        Format spec applied to float values
    na_string : str
        Shown for missing values
    label : str
        Header of the row-name column

    Example
    -------
    >>> print(format_metrics_table(
    ...     {'KF': {'rmse': 0.12, 'mean_nees': 2.01}},
    ...     columns=['rmse', 'mean_nees']))
    """
    def fmt(value):
        if value is None:
            return na_string
        if isinstance(value, float):
            return f"{value:{float_format}}"
        return str(value)

    headers = [col.replace('_', ' ').title() for col in columns]
    cells = {name: [fmt(row.get(col)) for col in columns] for name, row in metrics.items()}

    name_width = max([len(label)] + [len(name) for name in metrics])
    widths = [max([len(h)] + [len(c[i]) for c in cells.values()]) for i, h in enumerate(headers)]

    header = ' '.join([f"{label:<{name_width}}"] + [f"{h:>{w}}" for h, w in zip(headers, widths)])
    rule = len(header)

    lines = ['=' * rule, title, '=' * rule, header, '-' * rule]
    for name, row in cells.items():
        lines.append(' '.join([f"{name:<{name_width}}"] + [f"{c:>{w}}" for c, w in zip(row, widths)]))
    lines.append('=' * rule)
    return '\n'.join(lines) + '\n'


def save_metrics_table(
    metrics: Dict[str, Dict],
    save_path: str,
    columns: List[str],
    title: str = 'Estimator Comparison',
    float_format: str = '.4f',
    na_string: str = 'N/A',
    label: Optional[str] = None,
) -> None:
    """Write ``format_metrics_table(...)`` to ``save_path``."""
    text = format_metrics_table(metrics, columns, title=title, float_format=float_format,
                                na_string=na_string, label=label or 'Estimator')
    with open(save_path, 'w') as f:
        f.write(text)
    logger.info("Table saved to: %s", save_path)

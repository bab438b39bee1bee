from datetime import datetime, timezone
from typing import Any, Dict, List
import logging

from prettytable import PrettyTable

from .registry import MetricRegistry
from .types import Distribution, TimeSeries, TrafficResponse

logger = logging.getLogger(__name__)


class TableFormatter:
    """Handles table formatting and presentation"""

    def __init__(self):
        self.alignments = {
            'numeric': 'r',
            'text': 'l',
            'percentage': 'r',
            'timestamp': 'l'
        }

    def format_table(self, data: List[Dict], columns: List[str],
                     column_types: Dict[str, str]) -> PrettyTable:
        """Create consistently formatted table"""
        table = PrettyTable()
        table.field_names = columns

        for col in columns:
            col_type = column_types.get(col, 'text')
            table.align[col] = self.alignments.get(col_type, 'l')

        for row in data:
            table.add_row([
                self._format_value(row.get(col, ''), column_types.get(col, 'text'))
                for col in columns
            ])

        return table

    def _format_value(self, value: Any, value_type: str) -> str:
        """Format individual values based on their type"""
        if value is None:
            return self._get_default_value(value_type)

        if value_type == 'numeric':
            if isinstance(value, (int, float)):
                return f"{value:,}" if isinstance(value, int) else f"{value:,.2f}"
            return "0"

        elif value_type == 'percentage':
            if isinstance(value, (int, float)):
                return f"{value:.1f}%"
            return "0.0%"

        elif value_type == 'timestamp':
            if isinstance(value, int):
                moment = datetime.fromtimestamp(value, tz=timezone.utc)
                return moment.strftime('%Y-%m-%d %H:%M:%S UTC')
            return str(value)

        return str(value)

    def _get_default_value(self, value_type: str) -> str:
        """Get default value for different types"""
        if value_type == 'numeric':
            return "0"
        elif value_type == 'percentage':
            return "0.0%"
        else:
            return ""

    def format_time_series_table(self, series: TimeSeries) -> PrettyTable:
        """Format time series points, one row per bucket"""
        columns = ['Timestamp', 'Value']
        column_types = {'Timestamp': 'timestamp', 'Value': 'numeric'}
        data = [{'Timestamp': p.timestamp, 'Value': p.value} for p in series.points]
        table = self.format_table(data, columns, column_types)
        table.title = f"{series.metric_name} (sum: {self._format_value(series.total, 'numeric')})"
        return table

    def format_distribution_table(self, distribution: Distribution) -> PrettyTable:
        """Format ranked entries with their share of the total"""
        columns = ['Rank', 'Key', 'Value', 'Share']
        column_types = {'Rank': 'numeric', 'Key': 'text', 'Value': 'numeric', 'Share': 'percentage'}
        total = sum(entry.value or 0 for entry in distribution.entries)
        data = [
            {
                'Rank': rank,
                'Key': entry.key,
                'Value': entry.value,
                'Share': (entry.value or 0) / total * 100 if total else 0.0,
            }
            for rank, entry in enumerate(distribution.entries, start=1)
        ]
        return self.format_table(data, columns, column_types)

    def format_response(self, response: TrafficResponse) -> str:
        """Render every result of a response, one table each"""
        if not response.results:
            return "No data"

        tables = []
        for result in response.results:
            if isinstance(result, TimeSeries):
                tables.append(self.format_time_series_table(result).get_string())
            elif isinstance(result, Distribution):
                tables.append(self.format_distribution_table(result).get_string())
            else:
                logger.debug(f"Skipping passthrough item {type(result).__name__}")
        return "\n\n".join(tables)

    def format_registry_table(self, registry: MetricRegistry) -> PrettyTable:
        """Format the metric registry"""
        columns = ['Metric', 'Kind', 'Field', 'Dimension', 'Scope / Action']
        data = [
            {
                'Metric': key,
                'Kind': descriptor.kind.name,
                'Field': descriptor.summed_field,
                'Dimension': descriptor.dimension,
                'Scope / Action': descriptor.scope.value if descriptor.scope else descriptor.action,
            }
            for key, descriptor in registry.items()
        ]
        return self.format_table(data, columns, {})

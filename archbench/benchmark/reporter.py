"""
Report generation for measurements.
Supports Markdown, JSON and Excel output formats.
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Any, Optional, Sequence, Union

from openpyxl import Workbook, load_workbook
from openpyxl.styles import Font
from rich.console import Console
from rich.table import Table

from .metrics import Measurement
from .utils import get_machine_info, get_report_subdir_name
from ..config import Config

logger = logging.getLogger(__name__)

RESULT_SHEET = "Result"


class Reporter:
    """
    Generate reports from measurements in various formats.

    Supports:
        - Markdown reports
        - JSON data export
        - Excel workbooks, optionally filled into a template
        - Console output

    Reports are organized by date and host:
        <REPORT_DIR>/YYYYMMDD_hostname/

    Example:
        reporter = Reporter()
        reporter.generate_markdown(measurements)
        reporter.generate_excel(measurements, template="template.xlsx")
    """

    def __init__(self, output_dir: Optional[Path] = None, console: Optional[Console] = None):
        """
        Initialize reporter.

        Args:
            output_dir: Base directory for output files (default: Config.REPORT_DIR)
            console: Console for print_summary
        """
        base_dir = Path(output_dir) if output_dir else Config.REPORT_DIR

        self.output_dir = base_dir / get_report_subdir_name()
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.console = console or Console()
        self._machine_info = get_machine_info()

    def build_context(self, measurements: Sequence[Measurement]) -> Dict[str, Any]:
        """
        Plain values for report templates, keyed by name.

        Args:
            measurements: Measurements to report

        Returns:
            Dictionary with the measurements, the runs of the first one, the
            generation time and the machine info
        """
        data = [m.to_dict() for m in measurements]
        return {
            "measurements": data,
            "runs": data[0]["runs"] if data else [],
            "generated_at": datetime.now().isoformat(),
            "machine": dict(self._machine_info),
        }

    def generate_markdown(
        self,
        measurements: Sequence[Measurement],
        filename: Optional[str] = None,
    ) -> str:
        """
        Generate a Markdown report.

        Args:
            measurements: Measurements to report
            filename: Output filename (optional)

        Returns:
            Path to generated file
        """
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        if not filename:
            filename = f"measurements_{datetime.now().strftime('%Y%m%d_%H%M%S')}.md"
        output_path = self.output_dir / filename

        machine_info = self._machine_info

        lines = []
        lines.append("# Architecture Evaluation Report")
        lines.append(f"\n**Generated:** {timestamp}")
        lines.append(f"**Architectures:** {', '.join(m.architecture_name for m in measurements)}")
        lines.append("\n---\n")

        lines.append("## Environment\n")
        lines.append("| Item | Value |")
        lines.append("|------|-------|")
        lines.append(f"| Hostname | {machine_info['hostname']} |")
        lines.append(f"| Platform | {machine_info['platform']} |")
        lines.append(f"| Machine | {machine_info['machine']} |")
        lines.append(f"| Python | {machine_info['python']} |")
        lines.append(f"| CPUs | {machine_info['cpu_count']} |")
        lines.append("\n---\n")

        for measurement in measurements:
            lines.append(self._format_measurement_section(measurement))

        if len(measurements) > 1:
            lines.append(self._format_comparison_table(measurements))

        content = "\n".join(lines)

        with open(output_path, "w", encoding="utf-8") as f:
            f.write(content)

        logger.info(f"Markdown report written: {output_path}")
        return str(output_path)

    def _format_measurement_section(self, measurement: Measurement) -> str:
        """Format one measurement for Markdown."""
        lines = []
        lines.append(f"\n## {measurement.architecture_name}\n")

        lines.append("### Summary\n")
        lines.append("| Metric | Value |")
        lines.append("|--------|-------|")
        lines.append(f"| Runs | {measurement.run_count} |")
        lines.append(f"| Median execution time | {measurement.median_execution_time_ms} ms |")
        for metric, delay in measurement.median_delay_per_metric.items():
            lines.append(f"| Median delay {metric} | {delay:.3f} ms |")
        for name, value in measurement.median_diagnostics.items():
            lines.append(f"| Median {name} | {value:.1f} |")
        lines.append(f"| Total duration | {measurement.total_duration_sec:.1f} s |")

        lines.append("\n### Runs\n")
        header = ["Run Id", "Execution time (ms)"]
        for metric in measurement.metric_names:
            header += [f"Max {metric}", f"Min {metric}", f"Average {metric}"]
        lines.append("| " + " | ".join(header) + " |")
        lines.append("|" + "|".join("---" for _ in header) + "|")

        for run in measurement.runs:
            row = [str(run.id), str(run.execution_time_ms)]
            for metric in measurement.metric_names:
                summary = run.metrics[metric]
                row += [str(summary.max), str(summary.min), f"{summary.average:.3f}"]
            lines.append("| " + " | ".join(row) + " |")

        return "\n".join(lines)

    def _format_comparison_table(self, measurements: Sequence[Measurement]) -> str:
        """Format a comparison table for several architectures."""
        lines = []
        lines.append("\n## Comparison\n")

        names = [m.architecture_name for m in measurements]
        lines.append("| Metric |" + "|".join(f" {n} " for n in names) + "|")
        lines.append("|--------|" + "|".join("------" for _ in names) + "|")

        row = "| Median execution time (ms) |"
        for m in measurements:
            row += f" {m.median_execution_time_ms} |"
        lines.append(row)

        metrics: List[str] = []
        for m in measurements:
            metrics += [name for name in m.metric_names if name not in metrics]
        for metric in metrics:
            row = f"| Median delay {metric} (ms) |"
            for m in measurements:
                delay = m.median_delay_per_metric.get(metric)
                row += f" {delay:.3f} |" if delay is not None else " N/A |"
            lines.append(row)

        return "\n".join(lines)

    def generate_json(
        self,
        measurements: Sequence[Measurement],
        filename: Optional[str] = None,
    ) -> str:
        """
        Export measurements as JSON.

        Args:
            measurements: Measurements to export
            filename: Output filename (optional)

        Returns:
            Path to generated file
        """
        if not filename:
            filename = f"measurements_{datetime.now().strftime('%Y%m%d_%H%M%S')}.json"
        output_path = self.output_dir / filename

        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(self.build_context(measurements), f, ensure_ascii=False, indent=2)

        logger.info(f"JSON results written: {output_path}")
        return str(output_path)

    def generate_excel(
        self,
        measurements: Sequence[Measurement],
        filename: Optional[str] = None,
        template: Optional[Union[str, Path]] = None,
    ) -> str:
        """
        Write measurements to an Excel workbook.

        Each measurement gets a summary block followed by one row per run.

        Args:
            measurements: Measurements to write
            filename: Output filename (optional)
            template: Workbook whose Result sheet is filled (optional)

        Returns:
            Path to generated file
        """
        if not filename:
            filename = f"measurements_{datetime.now().strftime('%Y%m%d_%H%M%S')}.xlsx"
        output_path = self.output_dir / filename

        if template:
            workbook = load_workbook(template)
            if RESULT_SHEET in workbook.sheetnames:
                sheet = workbook[RESULT_SHEET]
            else:
                sheet = workbook.create_sheet(RESULT_SHEET)
        else:
            workbook = Workbook()
            sheet = workbook.active
            sheet.title = RESULT_SHEET

        bold = Font(bold=True)
        row = 1
        for measurement in measurements:
            sheet.cell(row=row, column=1, value=measurement.architecture_name).font = bold
            row += 1

            summary = [
                ("Runs", measurement.run_count),
                ("Median execution time (ms)", measurement.median_execution_time_ms),
            ]
            summary += [
                (f"Median delay {metric} (ms)", delay)
                for metric, delay in measurement.median_delay_per_metric.items()
            ]
            summary += [
                (f"Median {name}", value)
                for name, value in measurement.median_diagnostics.items()
            ]
            for label, value in summary:
                sheet.cell(row=row, column=1, value=label)
                sheet.cell(row=row, column=2, value=value)
                row += 1

            row += 1
            header = ["Run Id", "Execution time"]
            for metric in measurement.metric_names:
                header += [f"Max {metric}", f"Min {metric}", f"Average {metric}"]
            for column, title in enumerate(header, start=1):
                sheet.cell(row=row, column=column, value=title).font = bold
            row += 1

            for run in measurement.runs:
                values = [run.id, run.execution_time_ms]
                for metric in measurement.metric_names:
                    triple = run.metrics[metric]
                    values += [triple.max, triple.min, triple.average]
                for column, value in enumerate(values, start=1):
                    sheet.cell(row=row, column=column, value=value)
                row += 1

            row += 1

        workbook.save(output_path)
        workbook.close()

        logger.info(f"Excel report written: {output_path}")
        return str(output_path)

    def print_summary(self, measurement: Measurement) -> None:
        """Print a measurement to the console."""
        self.console.print(f"\n[bold]{measurement.architecture_name}[/bold]")

        summary = Table(show_header=False)
        summary.add_column("Metric", style="cyan")
        summary.add_column("Value", justify="right")
        summary.add_row("Median execution time", f"{measurement.median_execution_time_ms} ms")
        for metric, delay in measurement.median_delay_per_metric.items():
            summary.add_row(f"Median delay {metric}", f"{delay:.3f} ms")
        for name, value in measurement.median_diagnostics.items():
            summary.add_row(f"Median {name}", f"{value:.1f}")
        self.console.print(summary)

        runs = Table(title="Runs")
        runs.add_column("Run Id", justify="right")
        runs.add_column("Execution time", justify="right")
        for metric in measurement.metric_names:
            runs.add_column(f"Max {metric}", justify="right")
            runs.add_column(f"Min {metric}", justify="right")
            runs.add_column(f"Average {metric}", justify="right")

        for run in measurement.runs:
            row = [str(run.id), f"{run.execution_time_ms} ms"]
            for metric in measurement.metric_names:
                triple = run.metrics[metric]
                row += [str(triple.max), str(triple.min), f"{triple.average:.3f}"]
            runs.add_row(*row)

        self.console.print(runs)

"""PDF rendering of shared report payloads with fpdf2."""

from typing import Any

from fpdf import FPDF


def _latin1(text: Any) -> str:
    # Core PDF fonts only cover latin-1.
    return str(text).encode("latin-1", errors="replace").decode("latin-1")


class ReportPdfRenderer:
    """Implements IReportRenderer from core/interfaces.py.

    Layout: title, date range, activity summary, cost by model, daily cost.
    """

    def _heading(self, pdf: FPDF, text: str) -> None:
        pdf.ln(4)
        pdf.set_font("Helvetica", "B", 13)
        pdf.cell(0, 8, _latin1(text), new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "", 10)

    def _table(self, pdf: FPDF, header: list[str], rows: list[list[Any]]) -> None:
        if not rows:
            pdf.cell(0, 6, "No data for this period.", new_x="LMARGIN", new_y="NEXT")
            return
        with pdf.table() as table:
            for values in [header, *rows]:
                row = table.row()
                for value in values:
                    row.cell(_latin1(value))

    def render(self, payload: dict[str, Any]) -> bytes:
        activity = payload.get("activity") or {}
        cost = payload.get("cost") or {}

        pdf = FPDF()
        pdf.set_title("Mission Control Report")
        pdf.add_page()
        pdf.set_font("Helvetica", "B", 18)
        pdf.cell(0, 12, "Mission Control Report", new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("Helvetica", "", 10)
        pdf.cell(
            0,
            6,
            _latin1(f"{payload.get('start_date')} to {payload.get('end_date')}"),
            new_x="LMARGIN",
            new_y="NEXT",
        )
        pdf.cell(0, 6, _latin1(f"Generated {payload.get('generated_at')}"), new_x="LMARGIN", new_y="NEXT")

        self._heading(pdf, "Activity")
        summary_rows = [
            ["Total activities", activity.get("total", 0)],
            ["Success rate", f"{activity.get('success_rate', 0)}%"],
        ]
        summary_rows += [[f"Type: {k}", v] for k, v in sorted((activity.get("by_type") or {}).items())]
        summary_rows += [[f"Status: {k}", v] for k, v in sorted((activity.get("by_status") or {}).items())]
        self._table(pdf, ["Metric", "Value"], summary_rows)

        self._heading(pdf, f"Cost by model (total ${cost.get('total', 0):.2f})")
        self._table(
            pdf,
            ["Model", "Cost (USD)", "Share"],
            [[m["model"], f"{m['cost']:.2f}", f"{m['percent_of_total']}%"] for m in cost.get("by_model") or []],
        )

        self._heading(pdf, "Daily cost")
        self._table(
            pdf,
            ["Date", "Cost (USD)", "Input tokens", "Output tokens"],
            [[d["date"], f"{d['cost']:.2f}", d["input"], d["output"]] for d in cost.get("daily") or []],
        )

        return bytes(pdf.output())

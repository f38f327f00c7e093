"""PDF report assembly for completed analyses."""

import io
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import cm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    Flowable,
    Image,
    Paragraph,
    SimpleDocTemplate,
    Spacer,
    Table,
    TableStyle,
)

from lesion_screener.domain.images import ImageHandle
from lesion_screener.domain.predictions import (
    CalibratedPrediction,
    is_low_confidence,
    is_sorted_descending,
)
from lesion_screener.domain.reports import ReportArtifact
from lesion_screener.errors import AssemblyFailed

REPORT_MIME_TYPE = "application/pdf"

DISCLAIMER = (
    "This tool is for educational and screening purposes only. It does not "
    "provide medical diagnosis or treatment advice. Always consult a qualified "
    "dermatologist for any skin concerns. The AI predictions may be inaccurate "
    "and should not be solely relied upon for health decisions."
)

LOW_CONFIDENCE_NOTICE = (
    "The model is not confident about this result. Consider retaking the photo "
    "in better lighting and consult a dermatologist."
)

_IMAGE_MAX_SIZE = 8 * cm

_logger = logging.getLogger(__name__)


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class ReportAssembler:
    """Builds a reproducible PDF report from a completed analysis."""

    title: str = "Skin Lesion Analysis Report"
    clock: Callable[[], datetime] = field(default=_utc_now)

    def assemble(
        self,
        image: ImageHandle | None,
        aux_visual: ImageHandle | None,
        predictions: list[CalibratedPrediction],
        *,
        generated_at: datetime | None = None,
    ) -> ReportArtifact:
        """Render the report; identical inputs yield identical bytes."""
        if not predictions:
            raise AssemblyFailed("Cannot assemble a report without predictions")
        if not is_sorted_descending(predictions):
            raise AssemblyFailed("Predictions must be sorted by confidence")
        if image is None or image.is_empty:
            raise AssemblyFailed("Cannot assemble a report without an image")

        timestamp = _as_utc(generated_at or self.clock())
        try:
            data = self._render(image, aux_visual, predictions, timestamp)
        except Exception as exc:
            raise AssemblyFailed(f"Failed to render report: {exc}") from exc

        _logger.info(
            "Assembled report: predictions=%s bytes=%s", len(predictions), len(data)
        )
        return ReportArtifact(
            data=data,
            mime_type=REPORT_MIME_TYPE,
            suggested_filename=f"lesion-report-{timestamp:%Y%m%d-%H%M%S}.pdf",
            generated_at=timestamp,
        )

    def _render(
        self,
        image: ImageHandle,
        aux_visual: ImageHandle | None,
        predictions: list[CalibratedPrediction],
        timestamp: datetime,
    ) -> bytes:
        styles = getSampleStyleSheet()
        buffer = io.BytesIO()
        document = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=self.title,
            author="lesion-screener",
            creator="lesion-screener",
            invariant=1,
        )

        story: list[Flowable] = [
            Paragraph(escape(self.title), styles["Title"]),
            Paragraph(
                f"Generated: {timestamp:%Y-%m-%d %H:%M:%S} UTC", styles["Normal"]
            ),
            Spacer(1, 0.5 * cm),
            Paragraph("Original image", styles["Heading2"]),
            _image_flowable(image),
        ]
        if aux_visual is not None and not aux_visual.is_empty:
            story.append(Paragraph("Attention heatmap", styles["Heading2"]))
            story.append(_image_flowable(aux_visual))

        story.append(Paragraph("Analysis results", styles["Heading2"]))
        story.append(_predictions_table(predictions))

        top = predictions[0]
        story.append(Spacer(1, 0.4 * cm))
        story.append(
            Paragraph(f"Most likely: {escape(top.label)}", styles["Heading3"])
        )
        if top.description:
            story.append(Paragraph(escape(top.description), styles["Normal"]))
        if is_low_confidence(predictions):
            story.append(Spacer(1, 0.3 * cm))
            story.append(Paragraph(LOW_CONFIDENCE_NOTICE, styles["Normal"]))

        story.append(Spacer(1, 0.6 * cm))
        story.append(Paragraph("Medical disclaimer", styles["Heading2"]))
        story.append(Paragraph(DISCLAIMER, styles["Normal"]))

        document.build(story)
        return buffer.getvalue()


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _image_flowable(handle: ImageHandle) -> Image:
    """Scale an image to fit the report column while keeping its aspect."""
    width, height = ImageReader(io.BytesIO(handle.data)).getSize()
    scale = min(_IMAGE_MAX_SIZE / width, _IMAGE_MAX_SIZE / height)
    return Image(io.BytesIO(handle.data), width=width * scale, height=height * scale)


def _predictions_table(predictions: list[CalibratedPrediction]) -> Table:
    rows = [["Condition", "Confidence", "Band"]]
    for prediction in predictions:
        rows.append(
            [
                prediction.label,
                f"{prediction.confidence * 100:.1f}%",
                prediction.band.value.title(),
            ]
        )
    table = Table(rows, colWidths=[9 * cm, 3 * cm, 3 * cm])
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
            ]
        )
    )
    return table

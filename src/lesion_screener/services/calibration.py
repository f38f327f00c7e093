"""Confidence calibration for raw per-class model scores."""

import math
from collections.abc import Sequence

from lesion_screener.domain.catalog import HAM10000_CATALOG, ClassCatalog
from lesion_screener.domain.predictions import CalibratedPrediction, RawScore
from lesion_screener.errors import DegenerateScores, NoScores

DEFAULT_FLOOR = 0.79


def calibrate(
    raw: Sequence[RawScore],
    floor: float = DEFAULT_FLOOR,
    *,
    catalog: ClassCatalog | None = None,
    class_order: Sequence[str] | None = None,
    limit: int | None = None,
) -> list[CalibratedPrediction]:
    """Turn raw scores into a sorted distribution whose top entry meets the floor.

    Weights are normalized to sum to one. When the top confidence is below
    ``floor`` it is raised to exactly ``floor`` and the remaining ``1 - floor``
    is shared across the other entries in proportion to their normalized
    weights. A single class always receives a confidence of 1.0.

    Ties keep the position given by ``class_order`` and then the input order.
    ``limit`` trims the calibrated list to its highest ranked entries. The cut
    happens after normalization, so a trimmed list may sum to less than one.
    """
    if not 0.0 < floor <= 1.0:
        raise ValueError(f"Calibration floor must be in (0, 1], got {floor}")
    if limit is not None and limit < 1:
        raise ValueError(f"Prediction limit must be positive, got {limit}")
    if not raw:
        raise NoScores("No scores to calibrate")

    _check_weights(raw)
    ranked = _rank(raw, class_order)

    try:
        total = math.fsum(score.weight for score in ranked)
    except OverflowError as exc:
        raise DegenerateScores("Scores overflow when summed") from exc
    if total <= 0.0:
        raise DegenerateScores("Scores sum to zero and cannot be normalized")
    confidences = [score.weight / total for score in ranked]
    confidences = _enforce_floor(confidences, floor)

    resolved_catalog = catalog if catalog is not None else HAM10000_CATALOG
    predictions = []
    for score, confidence in zip(ranked, confidences, strict=True):
        info = resolved_catalog.lookup(score.class_id)
        predictions.append(
            CalibratedPrediction(
                class_id=score.class_id,
                label=info.label,
                description=info.description,
                confidence=confidence,
            )
        )
    if limit is not None:
        return predictions[:limit]
    return predictions


def _check_weights(raw: Sequence[RawScore]) -> None:
    seen: set[str] = set()
    for score in raw:
        if not math.isfinite(score.weight) or score.weight < 0.0:
            raise DegenerateScores(
                f"Invalid weight {score.weight!r} for class {score.class_id}"
            )
        if score.class_id in seen:
            raise DegenerateScores(f"Duplicate class id: {score.class_id}")
        seen.add(score.class_id)


def _rank(
    raw: Sequence[RawScore], class_order: Sequence[str] | None
) -> list[RawScore]:
    """Sort descending by weight with a deterministic tie-break."""
    positions = {class_id: index for index, class_id in enumerate(class_order or [])}
    fallback = len(positions)
    indexed = list(enumerate(raw))
    indexed.sort(
        key=lambda item: (
            -item[1].weight,
            positions.get(item[1].class_id, fallback),
            item[0],
        )
    )
    return [score for _, score in indexed]


def _enforce_floor(confidences: list[float], floor: float) -> list[float]:
    if len(confidences) == 1:
        return [1.0]
    top, rest = confidences[0], confidences[1:]
    if top >= floor:
        return confidences
    rest_total = math.fsum(rest)
    remainder = 1.0 - floor
    return [floor] + [value / rest_total * remainder for value in rest]

"""Lesion class catalog used to label calibrated predictions."""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass


@dataclass(frozen=True)
class ClassInfo:
    """Presentable label and description for a model class."""

    class_id: str
    label: str
    description: str


class ClassCatalog:
    """Ordered lookup of class metadata by class id."""

    def __init__(self, classes: Iterable[ClassInfo]) -> None:
        self._classes: dict[str, ClassInfo] = {}
        for info in classes:
            if info.class_id in self._classes:
                raise ValueError(f"Duplicate class id: {info.class_id}")
            self._classes[info.class_id] = info

    def __iter__(self) -> Iterator[ClassInfo]:
        return iter(self._classes.values())

    def __len__(self) -> int:
        return len(self._classes)

    def __contains__(self, class_id: object) -> bool:
        return class_id in self._classes

    def class_ids(self) -> list[str]:
        """Return class ids in catalog order."""
        return list(self._classes)

    def lookup(self, class_id: str) -> ClassInfo:
        """Return metadata for a class, falling back to the bare id."""
        info = self._classes.get(class_id)
        if info is None:
            return ClassInfo(class_id=class_id, label=class_id, description="")
        return info


HAM10000_CATALOG = ClassCatalog(
    [
        ClassInfo(
            "nv",
            "Melanocytic Nevus (Mole)",
            "A benign growth of melanocytes. Most moles are harmless but should "
            "be monitored for changes.",
        ),
        ClassInfo(
            "mel",
            "Melanoma",
            "A serious form of skin cancer. Immediate dermatologist consultation "
            "is strongly recommended.",
        ),
        ClassInfo(
            "bkl",
            "Benign Keratosis",
            "A non-cancerous skin growth, typically harmless but may be removed "
            "for cosmetic reasons.",
        ),
        ClassInfo(
            "bcc",
            "Basal Cell Carcinoma",
            "The most common type of skin cancer, highly treatable when detected "
            "early.",
        ),
        ClassInfo(
            "akiec",
            "Actinic Keratosis",
            "A precancerous skin growth caused by sun damage. Should be monitored "
            "by a dermatologist.",
        ),
        ClassInfo(
            "vasc",
            "Vascular Lesion",
            "A skin lesion involving blood vessels, generally benign but varies "
            "in type.",
        ),
        ClassInfo(
            "df",
            "Dermatofibroma",
            "A common benign skin growth, typically harmless and often doesn't "
            "require treatment.",
        ),
    ]
)

"""Manifest list passed between deploy stages."""

from dataclasses import dataclass
from typing import Iterator, Tuple


@dataclass(frozen=True)
class ManifestList:
    """Ordered, immutable list of raw manifest text.

    Each entry is YAML text and may contain several ``---`` separated
    documents (kustomize output is stored as a single entry). Transform
    stages never modify a list in place; they return a new one.

    Attributes:
        manifests: Raw YAML entries in order
    """
    manifests: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.manifests)

    def __iter__(self) -> Iterator[str]:
        return iter(self.manifests)

    def __getitem__(self, index: int) -> str:
        return self.manifests[index]

    def append(self, manifest: str) -> "ManifestList":
        """Return a new list with ``manifest`` added at the end."""
        return ManifestList(self.manifests + (manifest,))

    def to_yaml(self) -> str:
        """Join all entries into one YAML stream, e.g. for ``kubectl apply -f -``."""
        parts = []
        for manifest in self.manifests:
            text = manifest.strip("\n")
            if text.startswith("---"):
                text = text.split("\n", 1)[1] if "\n" in text else ""
            parts.append(text)
        return "---\n".join(part + "\n" for part in parts if part.strip())

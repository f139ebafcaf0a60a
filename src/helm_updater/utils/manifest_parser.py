"""Parse multi-document YAML manifests into individual documents."""

from __future__ import annotations

import yaml

from helm_updater.models.manifest import ParsedDocument

_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)


def parse_documents(content: str) -> list[ParsedDocument]:
    """Parse a multi-document YAML string into ParsedDocuments.

    Indices are positions in the stream, so empty or non-mapping documents
    are skipped but still counted. Raises yaml.YAMLError on invalid input.
    """
    documents: list[ParsedDocument] = []
    if not content:
        return documents

    for index, doc in enumerate(yaml.load_all(content, Loader=_YamlLoader)):
        if not doc or not isinstance(doc, dict):
            continue
        metadata = doc.get("metadata") or {}
        if not isinstance(metadata, dict):
            metadata = {}
        documents.append(ParsedDocument(
            index=index,
            api_version=str(doc.get("apiVersion", "") or ""),
            kind=str(doc.get("kind", "") or ""),
            name=str(metadata.get("name", "") or ""),
            raw=doc,
        ))
    return documents


def kind_counts(documents: list[ParsedDocument]) -> dict[str, int]:
    """Count documents by kind."""
    counts: dict[str, int] = {}
    for doc in documents:
        counts[doc.kind] = counts.get(doc.kind, 0) + 1
    return counts

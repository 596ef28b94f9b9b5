"""Conversion between editor JSON content and structured documents."""

import json
import uuid
from typing import Any, List, Optional

from ..models.document import DocumentNode, HighlightMark, StructuredDocument
from ..models.enums import COMPLIANCE_MARK, DOC_NODE, TEXT_NODE

# JSON keys of a highlight mark's attributes, in editor naming.
_MARK_ATTRS = {
    "severity": "severity",
    "issueId": "issue_id",
    "message": "message",
    "category": "category",
    "regulation": "regulation",
    "suggestion": "suggestion",
    "jurisdiction": "jurisdiction",
    "issueType": "issue_type",
    "favoredParty": "favored_party",
}


class DocumentSerializer:
    """
    Handles conversion of editor content to and from StructuredDocument.

    Editor content is ProseMirror-style JSON: nodes with ``type``, an
    optional ``text``, ``attrs``, ``marks`` and a ``content`` list.
    """

    @staticmethod
    def from_content(content: Any, document_id: Optional[str] = None) -> StructuredDocument:
        """
        Build a document from raw content.

        Accepts None, a plain string (one paragraph per line), a dict with
        a ``text`` field, a node dict, a dict with a ``content`` list, or a
        list of nodes. Anything else yields an empty document.

        Args:
            content: Raw document content.
            document_id: Identifier for the document; generated if omitted.

        Returns:
            StructuredDocument whose annotation layer holds the compliance
            highlights found inline on text nodes.
        """
        document_id = document_id or str(uuid.uuid4())
        root = DocumentSerializer.root_from_content(content)
        annotations = DocumentSerializer.lift_inline_highlights(root)
        return StructuredDocument(id=document_id, root=root, annotations=tuple(annotations))

    @staticmethod
    def root_from_content(content: Any) -> DocumentNode:
        if content is None:
            return DocumentNode(type=DOC_NODE)
        if isinstance(content, str):
            return DocumentSerializer.root_from_text(content)
        if isinstance(content, list):
            return DocumentNode(type=DOC_NODE, content=DocumentSerializer._nodes_from_list(content))
        if isinstance(content, dict):
            if content.get("type") == DOC_NODE:
                return DocumentSerializer.node_from_dict(content)
            if "type" in content:
                return DocumentNode(type=DOC_NODE, content=[DocumentSerializer.node_from_dict(content)])
            if isinstance(content.get("content"), list):
                return DocumentNode(type=DOC_NODE, content=DocumentSerializer._nodes_from_list(content["content"]))
            if isinstance(content.get("content"), dict):
                return DocumentSerializer.root_from_content(content["content"])
            if isinstance(content.get("text"), str):
                return DocumentSerializer.root_from_text(content["text"])
        return DocumentNode(type=DOC_NODE)

    @staticmethod
    def root_from_text(text: str) -> DocumentNode:
        """Wrap plain text as a document with one paragraph per non-empty line."""
        paragraphs = []
        for line in text.splitlines():
            if line.strip():
                paragraphs.append(DocumentNode(type="paragraph", content=[DocumentNode(type=TEXT_NODE, text=line)]))
        return DocumentNode(type=DOC_NODE, content=paragraphs)

    @staticmethod
    def node_from_dict(data: dict[str, Any]) -> DocumentNode:
        """
        Convert an editor node dict to a DocumentNode.

        Raises:
            ValueError: If the node has no type.
        """
        if not isinstance(data, dict) or not data.get("type"):
            raise ValueError("Expected a node dictionary with a 'type' field")
        children = data.get("content") or []
        return DocumentNode(
            type=data["type"],
            text=data.get("text") if data["type"] == TEXT_NODE else None,
            attrs=dict(data.get("attrs") or {}),
            content=DocumentSerializer._nodes_from_list(children if isinstance(children, list) else []),
            marks=[mark for mark in data.get("marks") or [] if isinstance(mark, dict)],
        )

    @staticmethod
    def lift_inline_highlights(root: DocumentNode) -> List[HighlightMark]:
        """
        Move inline compliance highlight marks off text nodes into
        range annotations.

        Editors store a highlight as a mark on every text node it covers,
        so a mark split by other formatting comes back as one annotation
        when the pieces are contiguous and carry the same attributes.
        Other inline marks stay on their nodes.
        """
        spans: List[dict[str, Any]] = []

        def lift(node: DocumentNode, pos: int) -> None:
            if node.is_text:
                highlights = [mark for mark in node.marks if mark.get("type") == COMPLIANCE_MARK]
                if not highlights:
                    return
                node.marks = [mark for mark in node.marks if mark.get("type") != COMPLIANCE_MARK]
                end = pos + node.node_size
                for mark in highlights:
                    attrs = dict(mark.get("attrs") or {})
                    previous = next(
                        (span for span in reversed(spans) if span["to"] == pos and span["attrs"] == attrs),
                        None,
                    )
                    if previous is not None:
                        previous["to"] = end
                    elif end > pos:
                        spans.append({"type": COMPLIANCE_MARK, "from": pos, "to": end, "attrs": attrs})
                return
            child_pos = pos + 1
            for child in node.content:
                lift(child, child_pos)
                child_pos += child.node_size

        offset = 0
        for child in root.content:
            lift(child, offset)
            offset += child.node_size
        return [DocumentSerializer.mark_from_dict(span) for span in spans]

    @staticmethod
    def _nodes_from_list(items: List[Any]) -> List[DocumentNode]:
        # Entries that are not node dicts carry no content and are dropped.
        return [
            DocumentSerializer.node_from_dict(item)
            for item in items
            if isinstance(item, dict) and item.get("type")
        ]

    @staticmethod
    def node_to_dict(node: DocumentNode) -> dict[str, Any]:
        """Convert a DocumentNode to editor JSON."""
        data: dict[str, Any] = {"type": node.type}
        if node.text is not None:
            data["text"] = node.text
        if node.attrs:
            data["attrs"] = dict(node.attrs)
        if node.marks:
            data["marks"] = [dict(mark) for mark in node.marks]
        if node.content:
            data["content"] = [DocumentSerializer.node_to_dict(child) for child in node.content]
        return data

    @staticmethod
    def mark_to_dict(mark: HighlightMark) -> dict[str, Any]:
        return {
            "type": mark.mark_type,
            "from": mark.from_pos,
            "to": mark.to_pos,
            "attrs": mark.to_attrs(),
        }

    @staticmethod
    def mark_from_dict(data: dict[str, Any]) -> HighlightMark:
        attrs = data.get("attrs") or {}
        values = {
            field_name: str(attrs.get(key) or "")
            for key, field_name in _MARK_ATTRS.items()
        }
        values["severity"] = values["severity"] or "info"
        return HighlightMark(
            from_pos=int(data["from"]),
            to_pos=int(data["to"]),
            mark_type=data.get("type") or COMPLIANCE_MARK,
            **values,
        )

    @staticmethod
    def to_dict(document: StructuredDocument) -> dict[str, Any]:
        return {
            "id": document.id,
            "content": DocumentSerializer.node_to_dict(document.root),
            "annotations": [DocumentSerializer.mark_to_dict(mark) for mark in document.annotations],
            "metadata": document.metadata,
        }

    @staticmethod
    def from_dict(data: dict[str, Any]) -> StructuredDocument:
        if not isinstance(data, dict):
            raise ValueError("Expected dictionary for StructuredDocument")
        document = DocumentSerializer.from_content(data.get("content"), data.get("id"))
        document.replace_annotations(
            list(document.annotations)
            + [DocumentSerializer.mark_from_dict(mark) for mark in data.get("annotations") or []]
        )
        document.metadata = dict(data.get("metadata") or {})
        return document

    @staticmethod
    def serialize(document: StructuredDocument) -> str:
        """
        Serialize a document, annotations included, to a JSON string.

        Args:
            document: The document to serialize.

        Returns:
            JSON string representation of the document.
        """
        return json.dumps(DocumentSerializer.to_dict(document), ensure_ascii=False, indent=2)

    @staticmethod
    def deserialize(json_str: str) -> StructuredDocument:
        """
        Deserialize a JSON string produced by ``serialize``.

        Raises:
            ValueError: If the JSON is invalid or malformed.
        """
        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON: {str(e)}")
        return DocumentSerializer.from_dict(data)

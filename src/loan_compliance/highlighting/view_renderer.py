"""HTML rendering of a highlighted document."""

import os
from typing import Dict, List, Optional

from jinja2 import Environment, FileSystemLoader, select_autoescape

from ..models.document import DocumentNode, HighlightMark, StructuredDocument
from ..models.enums import IssueSeverity, IssueType
from ..models.issue import ComplianceReport
from .segments import split_text

BLOCK_TAGS = {
    "paragraph": "p",
    "bulletList": "ul",
    "orderedList": "ol",
    "listItem": "li",
    "blockquote": "blockquote",
    "table": "table",
    "tableRow": "tr",
    "tableCell": "td",
    "tableHeader": "th",
    "codeBlock": "pre",
}

SEVERITY_ORDER = [IssueSeverity.ERROR, IssueSeverity.WARNING, IssueSeverity.INFO]


def highlight_css_class(severity: str, issue_type: str) -> str:
    """CSS class for a mark; fairness findings use their own palette."""
    severity = severity if severity in {s.value for s in IssueSeverity} else IssueSeverity.INFO.value
    family = "fairness" if issue_type == IssueType.FAIRNESS.value else "compliance"
    return f"compliance-highlight {family}-{severity}"


class ViewRenderer:
    """
    Renders a structured document as HTML with its compliance marks.

    Every highlighted run becomes a ``span[data-compliance-highlight]``
    carrying the issue metadata as data attributes, so an editor can pick
    the marks back up from the markup.
    """

    def __init__(self, template_dir: Optional[str] = None):
        """
        Initialize the view renderer.

        Args:
            template_dir: Directory containing Jinja2 templates.
                         If not provided, uses the packaged templates.
        """
        if template_dir is None:
            template_dir = os.path.join(os.path.dirname(os.path.dirname(__file__)), "templates")

        self.template_dir = template_dir
        self.env = Environment(
            loader=FileSystemLoader(template_dir),
            autoescape=select_autoescape(['html', 'xml'])
        )

    def render_document(
        self,
        document: StructuredDocument,
        report: Optional[ComplianceReport] = None,
        title: Optional[str] = None,
    ) -> str:
        """
        Render the document and, optionally, a summary of its report.

        Args:
            document: Document whose compliance marks are rendered.
            report: Report to summarise next to the document.
            title: Page title; defaults to the document id.

        Returns:
            HTML string.
        """
        marks = document.compliance_marks
        nodes = self._prepare_children(document.root, 0, marks)

        template = self.env.get_template('highlighted_document.html')
        return template.render(
            title=title or document.id,
            document_id=document.id,
            nodes=nodes,
            mark_count=len(marks),
            report=self._prepare_report(report) if report else None,
        )

    def _prepare_children(self, node: DocumentNode, start: int, marks: List[HighlightMark]) -> List[Dict]:
        result = []
        pos = start
        for child in node.content:
            result.append(self._prepare_node(child, pos, marks))
            pos += child.node_size
        return result

    def _prepare_node(self, node: DocumentNode, pos: int, marks: List[HighlightMark]) -> Dict:
        """Convert a node to template-friendly format."""
        if node.is_text:
            return {
                'kind': 'text',
                'segments': self._prepare_segments(node, pos, marks),
            }
        if node.is_hard_break:
            return {'kind': 'break'}
        if node.type == "horizontalRule":
            return {'kind': 'rule'}

        if node.type == "heading":
            level = node.attrs.get("level", 1)
            tag = f"h{min(max(int(level), 1), 6)}"
        else:
            tag = BLOCK_TAGS.get(node.type, "div")
        return {
            'kind': 'block',
            'tag': tag,
            'children': self._prepare_children(node, pos + 1, marks),
        }

    def _prepare_segments(self, node: DocumentNode, pos: int, marks: List[HighlightMark]) -> List[Dict]:
        """Split a text node at mark boundaries."""
        formatting = {mark.get("type") for mark in node.marks if isinstance(mark, dict)}
        return [
            {
                'text': segment.text,
                'bold': 'bold' in formatting,
                'italic': 'italic' in formatting,
                'marks': [
                    dict(mark.to_attrs(), css_class=highlight_css_class(mark.severity, mark.issue_type))
                    for mark in segment.marks
                ],
            }
            for segment in split_text(node.text or "", pos, marks)
        ]

    def _prepare_report(self, report: ComplianceReport) -> Dict:
        """Convert a report to template-friendly format."""
        groups = []
        for severity in SEVERITY_ORDER:
            issues = [issue for issue in report.issues if issue.severity == severity]
            if issues:
                groups.append({
                    'severity': severity.value,
                    'issues': [issue.to_dict() for issue in issues],
                })
        return {
            'id': report.id,
            'score': report.score,
            'analyzed_at': report.analyzed_at.strftime("%Y-%m-%d %H:%M:%S"),
            'counts': report.count_by_severity(),
            'groups': groups,
        }

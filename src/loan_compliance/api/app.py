"""FastAPI application for the Loan Document Compliance System.

This module exposes the CompliancePipeline over HTTP: rule and country
listings, analysis of editor content, highlight application, an HTML
view of a highlighted document, report history and file uploads.

Usage (from project root, after installing the package):

    uvicorn loan_compliance.api.app:app --reload

Then POST editor JSON to /api/analyze, or a .docx/.pdf file to
/api/upload as multipart/form-data.
"""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel, Field

from ..models.issue import ComplianceIssue
from ..parsers.exceptions import ParseError
from ..parsers.serialization import DocumentSerializer
from ..pipeline import CompliancePipeline, PipelineConfig


app = FastAPI(title="Loan Document Compliance API", version="0.1.0")

_pipeline: Optional[CompliancePipeline] = None


def get_pipeline() -> CompliancePipeline:
    """Return the process-wide pipeline, configured from the environment on first use."""
    global _pipeline
    if _pipeline is None:
        _pipeline = CompliancePipeline(config=PipelineConfig.from_env())
    return _pipeline


class AnalyzeRequest(BaseModel):
    """Editor content plus the jurisdiction hints of one analysis."""
    content: Any = None
    document_id: Optional[str] = None
    provider_country: Optional[str] = None
    recipient_country: Optional[str] = None
    include_scans: Optional[bool] = None
    use_advisory: bool = True
    advisory_timeout: Optional[float] = Field(None, gt=0)


class HighlightRequest(BaseModel):
    """A serialized document and the issues to paint onto it."""
    document: Dict[str, Any]
    issues: List[Dict[str, Any]] = Field(default_factory=list)


class NegotiationRequest(BaseModel):
    clause: str
    concern: str


def _save_upload_to_temp(upload: UploadFile, temp_dir: Path) -> Path:
    """Save an uploaded file to a temporary directory and return its path."""
    suffix = Path(upload.filename or "").suffix or ""
    temp_file = tempfile.NamedTemporaryFile(delete=False, suffix=suffix, dir=temp_dir)
    try:
        content = upload.file.read()
        temp_file.write(content)
    finally:
        temp_file.close()
    return Path(temp_file.name)


@app.get("/api/rules")
async def list_rules(pipeline: CompliancePipeline = Depends(get_pipeline)) -> JSONResponse:
    rules = pipeline.get_rules()
    return JSONResponse(status_code=200, content={"count": len(rules), "rules": rules})


@app.get("/api/rules/applicable")
async def list_applicable_rules(
    provider_country: Optional[str] = None,
    recipient_country: Optional[str] = None,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Rules that would run for a pair of jurisdiction hints."""
    rules = pipeline.get_applicable_rules(provider_country, recipient_country)
    return JSONResponse(status_code=200, content={"count": len(rules), "rules": rules})


@app.get("/api/countries")
async def list_countries(pipeline: CompliancePipeline = Depends(get_pipeline)) -> JSONResponse:
    return JSONResponse(status_code=200, content={"countries": pipeline.get_eu_countries()})


@app.get("/api/advisory/status")
async def advisory_status(pipeline: CompliancePipeline = Depends(get_pipeline)) -> JSONResponse:
    return JSONResponse(status_code=200, content={"available": pipeline.is_advisory_available()})


@app.post("/api/analyze")
def analyze_document(
    request: AnalyzeRequest,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Run rules, scans and (when available) the advisory merge on editor content."""
    try:
        report = pipeline.analyze(
            request.content,
            provider_country=request.provider_country,
            recipient_country=request.recipient_country,
            document_id=request.document_id,
            include_scans=request.include_scans,
            use_advisory=request.use_advisory,
            advisory_timeout=request.advisory_timeout,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse(status_code=200, content=report.to_dict())


@app.post("/api/analyze/rules-only")
def analyze_rules_only(
    request: AnalyzeRequest,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Deterministic analysis without the advisory service."""
    try:
        report = pipeline.analyze_rules_only(
            request.content,
            provider_country=request.provider_country,
            recipient_country=request.recipient_country,
            document_id=request.document_id,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return JSONResponse(status_code=200, content=report.to_dict())


@app.post("/api/analyze/highlight")
def analyze_and_highlight(
    request: AnalyzeRequest,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Analyze editor content and return the report with the highlighted document."""
    try:
        report, result, document = pipeline.analyze_and_highlight(
            request.content,
            provider_country=request.provider_country,
            recipient_country=request.recipient_country,
            document_id=request.document_id,
            include_scans=request.include_scans,
            use_advisory=request.use_advisory,
            advisory_timeout=request.advisory_timeout,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    return JSONResponse(status_code=200, content={
        "report": report.to_dict(),
        "document": DocumentSerializer.to_dict(document),
        "applied": result.applied_count,
        "skipped_issue_ids": result.skipped_issue_ids,
    })


@app.post("/api/highlights")
def apply_highlights(
    request: HighlightRequest,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Replace a serialized document's compliance marks with marks for the given issues."""
    try:
        document = DocumentSerializer.from_dict(request.document)
        issues = [ComplianceIssue.from_dict(item) for item in request.issues]
    except (KeyError, ValueError) as exc:
        raise HTTPException(status_code=422, detail=f"Invalid highlight request: {exc}") from exc

    result = pipeline.apply_highlights(document, issues)
    return JSONResponse(status_code=200, content={
        "document": DocumentSerializer.to_dict(document),
        "applied": result.applied_count,
        "skipped_issue_ids": result.skipped_issue_ids,
    })


@app.post("/api/view", response_class=HTMLResponse)
def view_document(
    request: AnalyzeRequest,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> HTMLResponse:
    """Analyze editor content and render it as highlighted HTML."""
    try:
        report, _, document = pipeline.analyze_and_highlight(
            request.content,
            provider_country=request.provider_country,
            recipient_country=request.recipient_country,
            document_id=request.document_id,
            include_scans=request.include_scans,
            use_advisory=request.use_advisory,
            advisory_timeout=request.advisory_timeout,
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return HTMLResponse(content=pipeline.render_html(document, report), status_code=200)


@app.get("/api/reports/{document_id}")
async def list_reports(
    document_id: str,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    reports = pipeline.get_reports(document_id)
    return JSONResponse(status_code=200, content={
        "document_id": document_id,
        "reports": [report.to_dict() for report in reports],
    })


@app.get("/api/reports/{document_id}/latest")
async def latest_report(
    document_id: str,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    report = pipeline.get_latest_report(document_id)
    if report is None:
        raise HTTPException(status_code=404, detail=f"No report found for document {document_id}")
    return JSONResponse(status_code=200, content=report.to_dict())


@app.post("/api/negotiation")
def negotiation_advice(
    request: NegotiationRequest,
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Borrower-side negotiation advice for a single clause."""
    advice = pipeline.negotiation_advice(request.clause, request.concern)
    return JSONResponse(status_code=200, content={"advice": advice})


@app.post("/api/upload")
def upload_and_analyze(
    file: UploadFile = File(..., description="Loan document (.docx/.pdf/.json/.txt)"),
    provider_country: Optional[str] = Form(None),
    recipient_country: Optional[str] = Form(None),
    use_advisory: bool = Form(True),
    pipeline: CompliancePipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Load an uploaded document, analyze it and return the report with the highlighted document."""
    temp_dir = Path(tempfile.gettempdir()) / "loan_compliance_api"
    temp_dir.mkdir(parents=True, exist_ok=True)

    path = _save_upload_to_temp(file, temp_dir)
    try:
        document = pipeline.load_document(str(path), document_id=Path(file.filename or path.name).stem)
        report, result, document = pipeline.analyze_and_highlight(
            document,
            provider_country=provider_country,
            recipient_country=recipient_country,
            use_advisory=use_advisory,
        )
    except ParseError as exc:
        raise HTTPException(status_code=400, detail=exc.to_dict()) from exc
    finally:
        path.unlink(missing_ok=True)

    return JSONResponse(status_code=200, content={
        "report": report.to_dict(),
        "document": DocumentSerializer.to_dict(document),
        "applied": result.applied_count,
        "skipped_issue_ids": result.skipped_issue_ids,
    })

"""Site audit API: FastAPI app exposing the audit engine."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from audit_engine import run_site_audit
from config import configure_logging
from schemas import AuditReportResponse, AuditRequest

app = FastAPI(
    title="Site Audit API",
    description="Site crawl and SEO audit engine",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def startup() -> None:
    configure_logging()


@app.post("/audit", response_model=AuditReportResponse)
def audit(body: AuditRequest) -> AuditReportResponse:
    """
    Pipeline: discover URLs -> audit pages -> aggregate -> score -> return report.
    Invalid bodies are rejected with 422 before any crawling starts.
    """
    report = run_site_audit(body)
    return AuditReportResponse(**report)


@app.get("/health")
def health() -> dict:
    """Health check for deployment."""
    return {"status": "ok"}

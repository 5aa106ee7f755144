import logging
import os
from typing import List, Optional
from fastapi import FastAPI, File, HTTPException, Response, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from .aggregator import build_report
from .clock import local_now
from .errors import DocumentNotFound, DocumentParseError, DocumentValidationError
from .loader import DocumentState
from .metrics import COST_ALERT_THRESHOLD, scrape_metrics
from .schemas import CostReport, ServerLine

logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"), format="[costboard] %(levelname)s %(message)s")
LOG = logging.getLogger(__name__)

CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "*").split(",") if o.strip()]

app = FastAPI(title="AWS Cost Dashboard API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

state = DocumentState()


@app.on_event("startup")
def startup_event():
    state.load_default()


def current_report() -> CostReport:
    try:
        document = state.require()
    except DocumentNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return build_report(document, local_now(), threshold=COST_ALERT_THRESHOLD)


@app.get("/api/health")
def health():
    return {"status": "ok", "document_loaded": state.loaded}


@app.get("/api/costs", response_model=CostReport)
def get_costs():
    return current_report()


@app.get("/api/servers", response_model=List[ServerLine])
def get_servers(status: Optional[str] = None):
    servers = current_report().servers
    if status:
        servers = [s for s in servers if s.status.lower() == status.lower()]
    return servers


@app.get("/api/servers/{key}", response_model=ServerLine)
def get_server(key: str):
    for server in current_report().servers:
        if server.key == key:
            return server
    raise HTTPException(status_code=404, detail=f"no server {key!r}")


@app.post("/api/upload", response_model=CostReport)
async def upload(file: UploadFile = File(...)):
    raw = await file.read()
    try:
        document = state.replace_from_upload(raw, source=file.filename or "upload")
    except DocumentParseError as e:
        LOG.warning("rejected upload %s: %s", file.filename, e)
        raise HTTPException(status_code=400, detail=str(e))
    except DocumentValidationError as e:
        LOG.warning("rejected upload %s: %s", file.filename, e)
        raise HTTPException(status_code=422, detail=e.as_dicts())
    return build_report(document, local_now(), threshold=COST_ALERT_THRESHOLD)


@app.get("/metrics")
def metrics():
    report = None
    if state.loaded:
        report = build_report(state.document, local_now(), threshold=COST_ALERT_THRESHOLD)
    output, ctype = scrape_metrics(report)
    return Response(content=output, media_type=ctype)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.environ.get("PORT", "8000")))

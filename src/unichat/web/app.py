from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field

from unichat.bootstrap import build_app, resolve_model
from unichat.core.errors import ProviderClientError
from unichat.protocol.stream import stream_completion

logger = logging.getLogger(__name__)


class Attachment(BaseModel):
    type: str
    url: str


class WireMessage(BaseModel):
    role: str
    content: str = ""
    attachments: Optional[List[Attachment]] = None


class StreamRequest(BaseModel):
    messages: List[WireMessage] = Field(min_length=1)
    model_id: Optional[str] = None


def create_app(config_path: Path, *, ctx: Optional[Dict[str, Any]] = None) -> FastAPI:
    ctx = ctx or build_app(Path(config_path))
    store = ctx["store"]

    app = FastAPI(title="unichat relay")
    app.state.ctx = ctx

    @app.get("/api/models")
    def api_models():
        return JSONResponse(json.loads(store.export_json()))

    @app.get("/api/models/active")
    def api_active():
        model = store.active()
        if model is None:
            raise HTTPException(status_code=404, detail="No active model")
        return JSONResponse({**model.to_record(), "apiKey": "***"})

    @app.post("/api/stream")
    def api_stream(req: StreamRequest):
        # config/provider errors are answered before any byte of the stream
        try:
            model = resolve_model(ctx, req.model_id)
            stream = stream_completion(
                model,
                [m.model_dump(exclude_none=True) for m in req.messages],
                client=ctx["client"],
                policy=ctx["policy"],
            )
        except ProviderClientError as e:
            raise HTTPException(status_code=400, detail=str(e))

        def gen():
            # closing this generator (client went away) cancels the upstream request
            try:
                for delta in stream:
                    yield json.dumps(delta.to_dict(), ensure_ascii=False) + "\n"
            finally:
                stream.close()

        return StreamingResponse(gen(), media_type="application/x-ndjson",
                                 headers={"X-Model-Id": model.id})

    return app


def run(*, config: Path, host: str = "127.0.0.1", port: int = 8000) -> None:
    import uvicorn

    app = create_app(config)
    logger.info("Serving on http://%s:%d", host, port)
    uvicorn.run(app, host=host, port=port)

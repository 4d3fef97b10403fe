"""FastAPI web server exposing gig generation with live task status updates."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from ..config import ProjectConfig
from ..gig import GigData, GigService, IntroVideoAssets, MarketStrategy, TagsResponse, TitleResponse

logger = logging.getLogger(__name__)

CONFIG_ENV = "GIGACE_CONFIG"
# Finished runs stay replayable this long for late websocket subscribers.
RUN_RETENTION_SECONDS = 300.0

app = FastAPI(title="Gig Generator")


@lru_cache(maxsize=1)
def get_service() -> GigService:
    path = os.environ.get(CONFIG_ENV)
    config = ProjectConfig.from_file(path) if path else ProjectConfig.default()
    return GigService(config)


@dataclass
class RunState:
    keyword: str
    history: List[Dict[str, Any]] = field(default_factory=list)
    subscribers: List[asyncio.Queue] = field(default_factory=list)
    task: Optional[asyncio.Task] = None
    completed: bool = False


RUNS: Dict[str, RunState] = {}


class GigRequest(BaseModel):
    keyword: str
    tone: Optional[str] = None
    angle: Optional[str] = None


class TitleRequest(BaseModel):
    keyword: str
    current_title: str = ""


class TagsRequest(BaseModel):
    keyword: str
    title: str = ""
    category: str = ""
    subcategory: str = ""


class MarketRequest(BaseModel):
    keyword: str
    concept: Optional[str] = None


class VideoRequest(BaseModel):
    keyword: str
    title: str
    description: str
    audience: Optional[str] = None


HTML_PAGE = r"""<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>Gig Generator</title>
    <style>
      body { font-family: system-ui, sans-serif; max-width: 960px; margin: 2rem auto; color: #0f172a; }
      .status-pending { color: #f97316; }
      .status-running { color: #0ea5e9; }
      .status-completed { color: #10b981; }
      .status-repaired { color: #a855f7; }
      pre { background: #f1f5f9; padding: 1rem; border-radius: 8px; white-space: pre-wrap; }
    </style>
  </head>
  <body>
    <h1>Gig Generator</h1>
    <form id="form">
      <input id="keyword" placeholder="Main keyword, e.g. logo design" size="40" />
      <button type="submit">Generate</button>
    </form>
    <ul id="tasks"></ul>
    <pre id="result"></pre>
    <script>
      const rows = {};
      document.getElementById('form').addEventListener('submit', async (e) => {
        e.preventDefault();
        document.getElementById('tasks').innerHTML = '';
        document.getElementById('result').textContent = '';
        const keyword = document.getElementById('keyword').value;
        const resp = await fetch('/api/runs', {
          method: 'POST', headers: {'Content-Type': 'application/json'},
          body: JSON.stringify({keyword})
        });
        const data = await resp.json();
        const proto = location.protocol === 'https:' ? 'wss' : 'ws';
        const ws = new WebSocket(`${proto}://${location.host}/ws/${data.run_id}`);
        ws.onmessage = (msg) => {
          const event = JSON.parse(msg.data);
          if (event.type === 'status') {
            let row = rows[event.task_id];
            if (!row || !row.isConnected) {
              row = document.createElement('li');
              rows[event.task_id] = row;
              document.getElementById('tasks').appendChild(row);
            }
            row.className = 'status-' + event.status;
            row.textContent = `${event.task_id}: ${event.status}`;
          } else if (event.type === 'result') {
            document.getElementById('result').textContent = JSON.stringify(event.gig, null, 2);
          }
        };
      });
    </script>
  </body>
</html>
"""


@app.get("/", response_class=HTMLResponse)
async def root() -> HTMLResponse:
    return HTMLResponse(HTML_PAGE)


@app.get("/api/meta")
async def meta(service: GigService = Depends(get_service)) -> Dict[str, Any]:
    graph = service.plan()
    return {
        "project": service.config.name,
        "generation": {
            "tag_count": service.settings.tag_count,
            "faq_min": service.settings.faq_min,
            "faq_max": service.settings.faq_max,
            "title_prefix": service.settings.title_prefix,
            "include_image": service.settings.include_image,
        },
        "tasks": [
            {
                "id": task_id,
                "description": graph.specs[task_id].description,
                "depends_on": graph.specs[task_id].depends_on,
            }
            for task_id in graph.order()
        ],
        "tools": service.tool_registry.names(),
    }


@app.post("/api/gig", response_model=GigData)
async def generate_gig(request: GigRequest, service: GigService = Depends(get_service)) -> GigData:
    return await service.generate_gig(request.keyword, tone=request.tone, angle=request.angle)


@app.post("/api/gig/title", response_model=TitleResponse)
async def regenerate_title(request: TitleRequest, service: GigService = Depends(get_service)) -> TitleResponse:
    return await service.regenerate_title(request.keyword, request.current_title)


@app.post("/api/gig/tags", response_model=TagsResponse)
async def refresh_tags(request: TagsRequest, service: GigService = Depends(get_service)) -> TagsResponse:
    return await service.refresh_tags(request.keyword, request.title, request.category, request.subcategory)


@app.post("/api/market", response_model=MarketStrategy)
async def analyze_market(request: MarketRequest, service: GigService = Depends(get_service)) -> MarketStrategy:
    return await service.analyze_market(request.keyword, request.concept)


@app.post("/api/video", response_model=IntroVideoAssets)
async def generate_video(request: VideoRequest, service: GigService = Depends(get_service)) -> IntroVideoAssets:
    return await service.generate_video_assets(
        request.keyword, request.title, request.description, request.audience
    )


@app.post("/api/runs")
async def start_run(request: GigRequest, service: GigService = Depends(get_service)) -> Dict[str, Any]:
    run_id = str(uuid.uuid4())
    state = RunState(keyword=request.keyword)
    RUNS[run_id] = state
    state.task = asyncio.create_task(execute_run(run_id, service, request))
    return {"run_id": run_id, "keyword": request.keyword}


async def execute_run(run_id: str, service: GigService, request: GigRequest) -> None:
    state = RUNS[run_id]

    async def broadcast(event: Dict[str, Any]) -> None:
        state.history.append(event)
        for queue in list(state.subscribers):
            await queue.put(event)

    try:
        try:
            gig = await service.generate_gig(
                request.keyword, tone=request.tone, angle=request.angle, on_event=broadcast
            )
        except Exception as exc:
            logger.exception("Run %s failed for '%s'", run_id, request.keyword)
            gig = GigData.failure(str(exc) or type(exc).__name__, request.keyword)
        logger.info("Run %s finished for '%s'", run_id, request.keyword)
        await broadcast({"type": "result", "gig": gig.model_dump()})
    finally:
        state.completed = True
        asyncio.get_running_loop().call_later(RUN_RETENTION_SECONDS, expire_run, run_id)


def expire_run(run_id: str) -> None:
    """Drop a finished run nobody is watching; open sockets drop it on close."""

    state = RUNS.get(run_id)
    if state is not None and state.completed and not state.subscribers:
        RUNS.pop(run_id, None)


@app.websocket("/ws/{run_id}")
async def websocket_endpoint(websocket: WebSocket, run_id: str) -> None:
    if run_id not in RUNS:
        await websocket.close(code=1008)
        return
    state = RUNS[run_id]
    queue: asyncio.Queue = asyncio.Queue()
    state.subscribers.append(queue)
    replay = list(state.history)
    await websocket.accept()
    closed = False
    try:
        finished = False
        for event in replay:
            await websocket.send_text(json.dumps(event))
            finished = event.get("type") == "result"
        while not finished:
            event = await queue.get()
            await websocket.send_text(json.dumps(event))
            finished = event.get("type") == "result"
    except WebSocketDisconnect:
        closed = True
    finally:
        if queue in state.subscribers:
            state.subscribers.remove(queue)
        if state.completed and not state.subscribers:
            RUNS.pop(run_id, None)
        if not closed and websocket.client_state != WebSocketState.DISCONNECTED:
            try:
                await websocket.close()
            except RuntimeError:
                pass

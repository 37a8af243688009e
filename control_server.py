# control_server.py
from __future__ import annotations

import threading
import time
from typing import List, Optional

import uvicorn
from fastapi import Depends, FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from champion_catalog import ChampionCatalog, UnknownChampionError
from control_state import (
    BeginSelection,
    Clear,
    CommandBus,
    EndSelection,
    SetBan,
    SetPicks,
    SharedControlState,
    Terminate,
    ToggleAutoAccept,
    ToggleRuneSwap,
)


# -------------------------
# request models
# -------------------------
class BanRequest(BaseModel):
    champion: Optional[str] = Field(default=None, description="champion name; empty/null removes the ban")


class PicksRequest(BaseModel):
    champions: List[str] = Field(default_factory=list, description="ordered pick fallbacks")


def create_app(
    bus: CommandBus,
    control: SharedControlState,
    catalog: ChampionCatalog,
    token: str = "",
) -> FastAPI:
    """
    Local control surface. It only publishes commands and reads the status
    snapshot; the reconciliation loop applies the commands between polls.
    """
    app = FastAPI(title="Draft Autopilot control", version="0.1.0")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def check_token(x_autopilot_token: Optional[str] = Header(default=None)):
        if token and x_autopilot_token != token:
            raise HTTPException(status_code=401, detail="invalid token")

    def _queued(cmd) -> dict:
        bus.publish(cmd)
        return {"ok": True, "queued": type(cmd).__name__, "ts": int(time.time())}

    def _resolve(name: str):
        try:
            return catalog.resolve(name)
        except UnknownChampionError as e:
            raise HTTPException(
                status_code=422,
                detail={"error": str(e), "name": e.name, "suggestions": e.suggestions},
            )

    @app.get("/health")
    def health():
        return {"ok": True, "champions": len(catalog), "ts": int(time.time())}

    @app.get("/state", dependencies=[Depends(check_token)])
    def state():
        return {"ok": True, "state": control.snapshot(), "ts": int(time.time())}

    @app.get("/champions", dependencies=[Depends(check_token)])
    def champions():
        return {"ok": True, "names": catalog.all_names}

    @app.post("/selection/begin", dependencies=[Depends(check_token)])
    def selection_begin():
        return _queued(BeginSelection())

    @app.post("/selection/end", dependencies=[Depends(check_token)])
    def selection_end():
        return _queued(EndSelection())

    @app.post("/plan/ban", dependencies=[Depends(check_token)])
    def plan_ban(req: BanRequest):
        name = (req.champion or "").strip()
        return _queued(SetBan(_resolve(name) if name else None))

    @app.post("/plan/picks", dependencies=[Depends(check_token)])
    def plan_picks(req: PicksRequest):
        champs = tuple(_resolve(n) for n in req.champions if (n or "").strip())
        if not champs:
            raise HTTPException(status_code=422, detail="at least one champion is required")
        return _queued(SetPicks(champs))

    @app.post("/plan/clear", dependencies=[Depends(check_token)])
    def plan_clear():
        return _queued(Clear())

    @app.post("/toggle/auto-accept", dependencies=[Depends(check_token)])
    def toggle_auto_accept():
        return _queued(ToggleAutoAccept())

    @app.post("/toggle/rune-swap", dependencies=[Depends(check_token)])
    def toggle_rune_swap():
        return _queued(ToggleRuneSwap())

    @app.post("/terminate", dependencies=[Depends(check_token)])
    def terminate():
        return _queued(Terminate())

    return app


def serve_in_thread(app: FastAPI, host: str, port: int) -> uvicorn.Server:
    config = uvicorn.Config(app, host=host, port=port, log_level="warning")
    server = uvicorn.Server(config)
    t = threading.Thread(target=server.run, name="control-server", daemon=True)
    t.start()
    return server

# api/main.py
from __future__ import annotations

from datetime import date
from typing import Any, Dict, Optional, Union

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from clavtarot import __version__, config, logic, tarot_core
from clavtarot.tarot_core import InvalidParameterError, UnknownSpreadError


# ---------- Pydantic Schemas ----------
class ReadingRequest(BaseModel):
    spread: str = Field(..., description="single|three|love|career|celtic")
    seed: Optional[Union[int, str]] = None
    question: Optional[str] = None
    explain_with_llm: bool = False
    model: Optional[str] = None
    temperature: float = Field(0.2, ge=0.0, le=2.0)


class HealthResponse(BaseModel):
    status: str
    version: str
    cards: int
    has_gemini_token: bool


# ---------- FastAPI app ----------
app = FastAPI(title="ClavTarot API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"], allow_methods=["*"], allow_headers=["*"], allow_credentials=False
)


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(
        status="ok",
        version=app.version,
        cards=len(logic.default_catalog()),
        has_gemini_token=bool(config.GEMINI_TOKEN),
    )


@app.get("/v1/spreads")
def list_spreads():
    return {"spreads": [s.to_dict() for s in tarot_core.list_spreads()]}


@app.post("/v1/readings")
def create_reading(req: ReadingRequest) -> Dict[str, Any]:
    try:
        return logic.perform_reading(
            spread=req.spread,
            seed=req.seed,
            question=req.question,
            explain_with_llm=req.explain_with_llm,
            model=req.model,
            temperature=req.temperature,
        )
    except UnknownSpreadError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidParameterError as e:
        raise HTTPException(status_code=400, detail=str(e))


@app.get("/v1/daily")
def daily(day: Optional[date] = Query(None, alias="date")) -> Dict[str, Any]:
    day = day or date.today()
    reading = logic.daily_reading(day)
    return {"date": day.isoformat(), **reading.to_dict()}


@app.get("/v1/deck")
def deck() -> Dict[str, Any]:
    return {"groups": logic.browse_deck_dict(), "total": len(logic.default_catalog())}

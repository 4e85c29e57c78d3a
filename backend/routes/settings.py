"""Health check, LLM status and preset endpoints."""

import random

from fastapi import APIRouter, Depends, HTTPException

from dnd_chat import presets
from dnd_chat.llm import ResilientLLM
from dnd_chat.registry import SessionRegistry

from .deps import get_registry

router = APIRouter()


@router.get("/health")
async def health():
    """Health check."""
    return {"status": "ok"}


@router.get("/llm/status")
async def llm_status(registry: SessionRegistry = Depends(get_registry)):
    """Which provider is answering and whether it is rate limited."""
    return registry.llm_status()


@router.post("/llm/reset-rate-limit")
async def reset_rate_limit(registry: SessionRegistry = Depends(get_registry)):
    """Clear a rate-limit cool-down so the real provider is tried again."""
    if isinstance(registry.llm, ResilientLLM):
        registry.llm.reset_rate_limit()
    return registry.llm_status()


@router.get("/scenarios")
async def list_scenarios():
    """All preset opening scenarios by category."""
    return presets.SCENARIOS


@router.get("/scenarios/{category}/random")
async def random_scenario(category: str):
    """A random opening scenario from one category."""
    try:
        return {"category": category, "scenario": presets.random_scenario(category, random.Random())}
    except KeyError:
        raise HTTPException(404, "Scenario category not found")


@router.get("/rosters/{name}")
async def get_roster(name: str):
    """A preset party, ready to post as session participants."""
    try:
        return presets.get_roster(name)
    except KeyError:
        raise HTTPException(404, "Roster not found")

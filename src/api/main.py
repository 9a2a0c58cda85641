"""
FastAPI Application

Main entry point for the Agent Discussion API.
"""

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from typing import Optional, List, Dict, Any
import logging

from config.settings import get_settings, USER_AGENT_ID
from ..capabilities import default_registry
from ..context.builder import PromptBuilder
from ..discussion.controller import DiscussionController
from ..discussion.errors import DiscussionError, DiscussionErrorType
from ..discussion.schema import (
    AgentConfig,
    AgentDef,
    AgentMessage,
    ConversationSettings,
    DiscussionSettings,
    Member,
    NormalMessage,
    PromptMessage,
)
from ..discussion.store import MessageStore
from ..llm.claude import ClaudeClient

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Agent Discussion API",
    description="Multi-agent discussion orchestration and prompt assembly",
    version="1.0.0"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Global instances
store = None
registry = None
builder = None
llm = None
controller = None


# ====================
# Request/Response Models
# ====================

class PromptBuildRequest(BaseModel):
    agent_id: str
    agents: List[AgentDef] = Field(default_factory=list)
    messages: List[AgentMessage] = Field(default_factory=list)
    can_use_actions: bool = False
    context_messages: Optional[int] = Field(default=None, ge=0)


class PromptBuildResponse(BaseModel):
    messages: List[PromptMessage]
    window: Dict[str, int]


class DiscussionSelectRequest(BaseModel):
    discussion_id: str
    members: List[Member] = Field(default_factory=list)


class UserMessageRequest(BaseModel):
    content: str
    agent_id: str = USER_AGENT_ID


class SnapshotResponse(BaseModel):
    discussion_id: Optional[str]
    is_running: bool
    current_speaker_id: Optional[str]
    processed: int
    round_limit: int


# ====================
# Startup
# ====================

@app.on_event("startup")
async def startup():
    """Initialize services on startup"""
    global store, registry, builder, llm, controller

    settings = get_settings()

    logger.info("Starting Agent Discussion API...")

    store = MessageStore()
    registry = default_registry()
    logger.info(f"✓ Capability registry initialized ({len(registry)} capabilities)")

    builder = PromptBuilder(
        max_chars=settings.max_context_chars,
        default_context_messages=settings.default_context_messages,
    )
    logger.info("✓ Prompt builder initialized")

    llm = ClaudeClient()
    if llm.is_mock:
        logger.warning("ANTHROPIC_API_KEY not set, replies will be mocked")
    logger.info("✓ LLM client initialized")

    controller = DiscussionController(store=store, llm=llm, registry=registry, builder=builder)
    logger.info("Agent Discussion API ready!")


def _require_controller() -> DiscussionController:
    if controller is None:
        raise HTTPException(status_code=503, detail="Service not initialized")
    return controller


def _require_discussion() -> str:
    ctrl = _require_controller()
    if not ctrl.discussion_id:
        raise HTTPException(status_code=409, detail="No discussion selected")
    return ctrl.discussion_id


def _snapshot() -> SnapshotResponse:
    ctrl = _require_controller()
    snap = ctrl.get_snapshot()
    return SnapshotResponse(
        discussion_id=ctrl.discussion_id,
        is_running=snap.is_running,
        current_speaker_id=snap.current_speaker_id,
        processed=snap.processed,
        round_limit=snap.round_limit,
    )


# ====================
# API Endpoints
# ====================

@app.get("/")
async def root():
    """API root"""
    return {
        "name": "Agent Discussion API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs"
    }


@app.get("/health")
async def health():
    """Health check"""
    return {
        "status": "healthy",
        "initialized": controller is not None,
        "llm": "mock" if llm is None or llm.is_mock else "claude"
    }


@app.post("/api/prompt/build", response_model=PromptBuildResponse)
def build_prompt(request: PromptBuildRequest):
    """
    Build the prompt an agent would receive for the given history.
    """
    if builder is None or registry is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    agent = next((a for a in request.agents if a.id == request.agent_id), None)
    if agent is None:
        raise HTTPException(status_code=404, detail=f"Agent not found: {request.agent_id}")

    conversation = None
    if request.context_messages is not None:
        conversation = ConversationSettings(context_messages=request.context_messages)

    config = AgentConfig.from_agent(
        agent,
        agent_id=request.agent_id,
        can_use_actions=request.can_use_actions,
        conversation=conversation,
    )

    plan = builder.build(
        current_agent=agent,
        current_agent_config=config,
        agents=request.agents,
        messages=request.messages,
        capabilities=registry.get_capabilities(),
    )

    return PromptBuildResponse(
        messages=plan.messages,
        window={
            "total": plan.window.total,
            "within_budget": plan.window.within_budget,
            "min_context_messages": plan.window.min_context_messages,
            "included": plan.window.included,
            "included_chars": plan.window.included_chars,
        },
    )


@app.get("/api/capabilities")
async def list_capabilities():
    """List the capabilities agents may call"""
    if registry is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    return {
        "capabilities": [
            {"name": c.name, "description": c.description, "module": c.module}
            for c in registry.get_capabilities()
        ]
    }


@app.get("/api/agents", response_model=List[AgentDef])
async def list_agents():
    return _require_controller().agents


@app.put("/api/agents", response_model=List[AgentDef])
async def replace_agents(agents: List[AgentDef]):
    """Replace the known agent definitions"""
    ctrl = _require_controller()
    ctrl.set_agents(agents)
    return ctrl.agents


@app.put("/api/discussion", response_model=SnapshotResponse)
async def select_discussion(request: DiscussionSelectRequest):
    """Select the current discussion and its members"""
    ctrl = _require_controller()

    known = {a.id for a in ctrl.agents}
    unknown = [m.agent_id for m in request.members if m.agent_id not in known]
    if unknown:
        raise HTTPException(status_code=404, detail=f"Unknown agents: {unknown}")

    ctrl.set_current_discussion_id(request.discussion_id)
    ctrl.set_members(request.members)
    return _snapshot()


@app.get("/api/discussion/settings", response_model=DiscussionSettings)
async def get_discussion_settings():
    return _require_controller().settings


@app.patch("/api/discussion/settings", response_model=DiscussionSettings)
async def update_discussion_settings(patch: Dict[str, Any]):
    ctrl = _require_controller()
    try:
        return ctrl.set_settings(patch)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.get("/api/discussion/snapshot", response_model=SnapshotResponse)
async def get_snapshot():
    return _snapshot()


@app.get("/api/discussion/messages", response_model=List[AgentMessage])
async def list_messages():
    discussion_id = _require_discussion()
    return store.list_messages(discussion_id)


@app.post("/api/discussion/messages")
def post_message(request: UserMessageRequest):
    """
    Add a user message and run the discussion until it settles.

    Returns the messages created during this call.
    """
    ctrl = _require_controller()
    discussion_id = _require_discussion()

    before = len(store.list_messages(discussion_id))
    message = store.create_message(NormalMessage(
        discussion_id=discussion_id,
        agent_id=request.agent_id,
        content=request.content,
    ))

    try:
        ctrl.process(message)
    except DiscussionError as e:
        if e.type == DiscussionErrorType.NO_DISCUSSION:
            raise HTTPException(status_code=409, detail=str(e))
        logger.error(f"Discussion error: {e}")
        raise HTTPException(status_code=500, detail=str(e))

    created = store.list_messages(discussion_id)[before:]
    return {
        "messages": [m.model_dump(mode="json") for m in created],
        "snapshot": _snapshot().model_dump(),
    }


@app.post("/api/discussion/pause", response_model=SnapshotResponse)
async def pause_discussion():
    _require_controller().pause()
    return _snapshot()


@app.post("/api/discussion/resume", response_model=SnapshotResponse)
async def resume_discussion():
    _require_controller().resume()
    return _snapshot()

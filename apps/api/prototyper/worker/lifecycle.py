"""LangGraph state machine for one prompt build transition.

Graph structure:
START → start → generate → compile → finalize → END
                   ↓           ↓
                  fail ←───────┘
                   ↓
                  END

Adapter errors (generation, compilation) are prompt-local: they route to the
``fail`` node, which marks the prompt failed and records an error event.
Store errors are not caught here and propagate to the worker loop.
"""

import logging
from typing import Literal, Optional, Protocol, TypedDict

from langgraph.graph import END, StateGraph

from prototyper.database.models import Prompt
from prototyper.repositories.event_repository import PromptEventLog
from prototyper.repositories.prompt_repository import PromptRepository
from prototyper.schemas import BuildArtifacts, EventLevel, GenerationResult, PromptStatus
from prototyper.services.compiler import Compiler
from prototyper.services.preview import build_preview_slug, build_sandbox_config

logger = logging.getLogger(__name__)


class Generator(Protocol):
    @property
    def is_configured(self) -> bool: ...

    async def generate(self, prompt_text: str, resume_handle: Optional[str] = None) -> GenerationResult: ...


# =============================================================================
# State Definition
# =============================================================================

class BuildState(TypedDict, total=False):
    """State carried through one build transition.

    Attributes:
        prompt_id: Prompt being built
        prompt_text: Text sent to the generator
        status: Status the prompt had when it was picked
        handle: Generation handle, stored or freshly returned
        preview_slug: Slug already assigned to the prompt, if any
        source: Generated component source
        compiled: Compiled JavaScript
        error: Failure message of the step that failed
        failed_step: "generation" or "compilation"
        final_status: Status the prompt ended in
    """
    prompt_id: str
    prompt_text: str
    status: str
    handle: Optional[str]
    preview_slug: Optional[str]
    source: Optional[str]
    compiled: Optional[str]
    error: Optional[str]
    failed_step: Optional[str]
    final_status: str


def initial_state(prompt: Prompt) -> BuildState:
    return BuildState(
        prompt_id=prompt.id,
        prompt_text=prompt.prompt_text,
        status=prompt.status,
        handle=prompt.generation_handle,
        preview_slug=prompt.preview_slug,
        source=None,
        compiled=None,
        error=None,
        failed_step=None,
    )


class PromptLifecycle:
    """Drives a prompt from its current status to ``ready`` or ``failed``."""

    def __init__(
        self,
        store: PromptRepository,
        events: PromptEventLog,
        generator: Generator,
        compiler: Compiler,
    ):
        self._store = store
        self._events = events
        self._generator = generator
        self._compiler = compiler
        self._graph = self.build_graph().compile()

    # =========================================================================
    # Node Functions
    # =========================================================================

    async def start_node(self, state: BuildState) -> dict:
        """Record the pickup and move the prompt to building."""
        prompt_id = state["prompt_id"]
        await self._events.record(
            prompt_id, EventLevel.INFO, "Processing prompt", {"status": state["status"]}
        )
        await self._store.mark_building(prompt_id)
        logger.info(f"[{prompt_id}] Marked prompt building")
        return {"status": PromptStatus.BUILDING.value}

    async def generate_node(self, state: BuildState) -> dict:
        """Generate source, resuming the stored conversation when there is one.

        Input: prompt_text, handle
        Output: handle, source (or error)
        """
        prompt_id = state["prompt_id"]
        previous_handle = state.get("handle")

        try:
            result = await self._generator.generate(state["prompt_text"], previous_handle)
        except Exception as e:
            return {"error": str(e) or type(e).__name__, "failed_step": "generation"}

        await self._store.save_generation(prompt_id, result.handle, result.source)
        if result.handle != previous_handle:
            logger.info(f"[{prompt_id}] Stored generation handle {result.handle}")

        await self._events.record(
            prompt_id, EventLevel.INFO, "Source received", {"handle": result.handle}
        )
        logger.info(f"[{prompt_id}] Received {len(result.source)} chars of source")
        return {"handle": result.handle, "source": result.source}

    async def compile_node(self, state: BuildState) -> dict:
        """Compile the generated source.

        Input: source
        Output: compiled (or error)
        """
        try:
            compiled = await self._compiler.compile(state["source"])
        except Exception as e:
            return {"error": str(e) or type(e).__name__, "failed_step": "compilation"}
        return {"compiled": compiled}

    async def finalize_node(self, state: BuildState) -> dict:
        """Persist every artifact in one update and mark the prompt ready."""
        prompt_id = state["prompt_id"]
        preview_slug = state.get("preview_slug") or build_preview_slug(prompt_id)

        await self._store.save_build_result(
            prompt_id,
            BuildArtifacts(
                source=state["source"],
                compiled_artifact=state["compiled"],
                preview_slug=preview_slug,
                sandbox_config=build_sandbox_config(),
            ),
        )
        await self._events.record(
            prompt_id, EventLevel.INFO, "Prompt ready", {"previewSlug": preview_slug}
        )
        logger.info(f"[{prompt_id}] Prompt build completed as {preview_slug}")
        return {"preview_slug": preview_slug, "final_status": PromptStatus.READY.value}

    async def fail_node(self, state: BuildState) -> dict:
        """Mark the prompt failed with the error of the step that failed."""
        prompt_id = state["prompt_id"]
        message = state["error"]

        await self._store.mark_failed(prompt_id, message)
        await self._events.record(
            prompt_id,
            EventLevel.ERROR,
            "Build failed",
            {"error": message, "step": state.get("failed_step")},
        )
        logger.error(f"[{prompt_id}] Prompt build failed during {state.get('failed_step')}: {message}")
        return {"final_status": PromptStatus.FAILED.value}

    # =========================================================================
    # Routing Functions
    # =========================================================================

    @staticmethod
    def route_after_generate(state: BuildState) -> Literal["compile", "fail"]:
        return "fail" if state.get("error") else "compile"

    @staticmethod
    def route_after_compile(state: BuildState) -> Literal["finalize", "fail"]:
        return "fail" if state.get("error") else "finalize"

    # =========================================================================
    # Workflow Builder
    # =========================================================================

    def build_graph(self) -> StateGraph:
        workflow = StateGraph(BuildState)

        workflow.add_node("start", self.start_node)
        workflow.add_node("generate", self.generate_node)
        workflow.add_node("compile", self.compile_node)
        workflow.add_node("finalize", self.finalize_node)
        workflow.add_node("fail", self.fail_node)

        workflow.set_entry_point("start")
        workflow.add_edge("start", "generate")

        workflow.add_conditional_edges(
            "generate",
            self.route_after_generate,
            {"compile": "compile", "fail": "fail"},
        )
        workflow.add_conditional_edges(
            "compile",
            self.route_after_compile,
            {"finalize": "finalize", "fail": "fail"},
        )

        workflow.add_edge("finalize", END)
        workflow.add_edge("fail", END)

        return workflow

    # =========================================================================
    # Public API
    # =========================================================================

    async def process_prompt(self, prompt: Prompt) -> PromptStatus:
        """Run one build transition for ``prompt``.

        Returns the status the prompt ended in.

        Raises:
            StoreError: persisting a transition failed
        """
        logger.info(f"[{prompt.id}] Picked prompt in status {prompt.status}")
        final_state = await self._graph.ainvoke(initial_state(prompt))
        return PromptStatus(final_state["final_status"])

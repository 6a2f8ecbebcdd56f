"""Input orchestration, generation client and the engine lifecycle."""
from .engine import Scene, ThoughtEngine  # noqa: F401
from .generation import GenerationError, GenerationService, RelayGenerationClient  # noqa: F401
from .orchestrator import InputOrchestrator, OrchestratorState  # noqa: F401

__all__ = [
    "GenerationError",
    "GenerationService",
    "InputOrchestrator",
    "OrchestratorState",
    "RelayGenerationClient",
    "Scene",
    "ThoughtEngine",
]

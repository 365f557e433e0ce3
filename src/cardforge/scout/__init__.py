"""Scout report integration for rendered cards."""

from .service import attach_scout_report, build_prompt, generate_scout_report

__all__ = ["attach_scout_report", "build_prompt", "generate_scout_report"]

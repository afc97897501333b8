"""Transaction execution engine for nbctl."""

from nbctl.engine.loop import run_commands
from nbctl.engine.prerequisites import run_prerequisites
from nbctl.engine.transaction import execute_attempt

__all__ = ["execute_attempt", "run_commands", "run_prerequisites"]

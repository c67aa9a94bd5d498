"""Local command execution for telety.

Public API:
    ExecutionBridge -- classifies and runs prompt submissions
    ExecutionRecord -- one spawned child process
    ProcessRunner -- spawns shell commands with inherited stdio
"""

from telety.execution.bridge import Disposition, ExecutionBridge
from telety.execution.process import ExecutionRecord, ProcessRunner

__all__ = ["Disposition", "ExecutionBridge", "ExecutionRecord", "ProcessRunner"]

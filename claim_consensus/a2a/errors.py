"""
A2A 协议错误
A2A protocol error taxonomy
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Optional


class A2AErrorCode(IntEnum):
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603
    TASK_NOT_FOUND = -32001
    TASK_ALREADY_EXISTS = -32002
    UNAUTHORIZED = -32003
    FORBIDDEN = -32004


class A2AProtocolError(Exception):
    """Raised inside handlers; the dispatcher turns it into an error envelope."""

    code: A2AErrorCode = A2AErrorCode.INTERNAL_ERROR

    def __init__(self, message: str, *, code: Optional[A2AErrorCode] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.data = data


class InvalidRequestError(A2AProtocolError):
    code = A2AErrorCode.INVALID_REQUEST


class InvalidParamsError(A2AProtocolError):
    code = A2AErrorCode.INVALID_PARAMS


class TaskNotFoundError(A2AProtocolError):
    code = A2AErrorCode.TASK_NOT_FOUND

    def __init__(self, task_id: str):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class TaskAlreadyExistsError(A2AProtocolError):
    code = A2AErrorCode.TASK_ALREADY_EXISTS


class InvalidTaskTransitionError(InvalidParamsError):
    def __init__(self, task_id: str, current: str, target: str):
        super().__init__(f"Cannot move task {task_id} from {current} to {target}")
        self.task_id = task_id
        self.current = current
        self.target = target


class TaskExecutionError(RuntimeError):
    """LLM invocation or agent lookup failed while running a task."""

    def __init__(self, message: str, task_id: Optional[str] = None):
        super().__init__(message)
        self.task_id = task_id


class AgentNotMaterializedError(TaskExecutionError):
    def __init__(self, agent_id: str):
        super().__init__("Agent executor not initialized")
        self.agent_id = agent_id

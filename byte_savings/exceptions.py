"""
Structured exception classes for the Byte Savings Backend
Provides unified error handling with structured error responses
"""

from typing import Optional, Dict, Any, List


class AuditError(Exception):
    """
    Exception raised while running a byte-efficiency audit

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable error message
        details: Additional error details
    """

    def __init__(
        self, code: str, message: str, details: Optional[Dict[str, Any]] = None
    ):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for JSON response"""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"


class MissingArtifactError(AuditError):
    """
    A required input was not gathered

    Raised when navigation mode runs without a dependency graph or processed
    navigation, or when an artifact needed to build one is empty.
    """

    def __init__(
        self,
        message: str,
        artifact: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.artifact = artifact
        extra = {"artifact": artifact} if artifact else {}
        super().__init__(
            code="missing_artifact",
            message=message,
            details={**(details or {}), **extra},
        )


class UnknownAuditError(AuditError):
    """No detector is registered under the requested audit id"""

    def __init__(self, audit_id: str):
        self.audit_id = audit_id
        super().__init__(
            code="unknown_audit",
            message=f"No audit registered with id '{audit_id}'",
            details={"audit_id": audit_id},
        )


class CircularDependencyError(AuditError):
    """
    Network initiator chain loops back on itself

    Attributes:
        cycle: List of request IDs forming the cycle
    """

    def __init__(
        self,
        message: str,
        cycle: Optional[List[str]] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.cycle = cycle or []
        super().__init__(
            code="circular_dependency",
            message=message,
            details={**(details or {}), "cycle": self.cycle},
        )

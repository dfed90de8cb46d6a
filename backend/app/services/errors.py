"""
Taxonomie des erreurs métier du moteur de rondes.

Chaque erreur porte son type (kind), un code stable et la classe HTTP
équivalente ; les routers les traduisent en HTTPException.
"""


class RondaError(Exception):
    kind = "Unexpected"
    code = "unexpected"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_detail(self) -> dict:
        return {"error": self.kind, "code": self.code, "message": self.message}


class NotFoundError(RondaError):
    kind = "NotFound"
    code = "not_found"
    status_code = 404


class ExecutionNotFound(NotFoundError):
    code = "execution_not_found"


class CheckpointNotFound(NotFoundError):
    code = "checkpoint_not_found"


class ScanNotFound(NotFoundError):
    code = "scan_not_found"


class InvalidStateError(RondaError):
    kind = "InvalidState"
    code = "invalid_state"
    status_code = 409


class ExecutionNotEligible(InvalidStateError):
    code = "execution_not_eligible"


class NoGuardAssigned(InvalidStateError):
    code = "no_guard_assigned"


class ValidationFailure(RondaError):
    kind = "ValidationFailure"
    code = "validation_failure"
    status_code = 400


class TransientPersistenceFailure(RondaError):
    """Conflit de mise à jour concurrente ou délai de stockage dépassé."""

    kind = "TransientPersistenceFailure"
    code = "transient_persistence_failure"
    status_code = 503

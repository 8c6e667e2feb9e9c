"""
Exception hierarchy for hand-eye calibration.
"""


class HandEyeError(Exception):
    """Base class for all hand-eye calibration errors."""


# Validation

class ValidationError(HandEyeError):
    """A sample or setting was rejected; state is left unchanged."""


class InsufficientRotationError(ValidationError):
    """
    Sample orientation is too similar to a prior sample.

    Parameters
    ----------
    side : str
        Which half of the pair failed: ``"effector"`` or ``"sensor"``.
    angle : float
        Smallest relative rotation angle found (radians).
    """

    def __init__(self, side: str, angle: float):
        self.side = side
        self.angle = angle
        if side == "effector":
            message = "End-effector orientation is too similar to a prior sample. Sample not recorded."
        else:
            message = "Camera orientation is too similar to a prior sample. Sample not recorded."
        super().__init__(message)


class FrameNamesError(ValidationError):
    """At least one required frame name is empty or malformed."""


class JointStateError(ValidationError):
    """No joint states, or a joint state doesn't match the joint names."""


class EmptyStoreError(HandEyeError):
    """Cannot delete last sample, list is already empty."""


# Persistence

class PersistenceError(HandEyeError):
    """A file could not be written or parsed."""


class SampleFileError(PersistenceError):
    """Sample file is missing, unreadable or malformed."""


class JointStateFileError(PersistenceError):
    """Joint state file is missing, unreadable or malformed."""


class UnsupportedFormatError(PersistenceError):
    """Requested launch script extension is not supported."""


# Solving

class SolverError(HandEyeError):
    """The solver failed (non-convergence, degenerate input, ...)."""


class InsufficientSamplesError(SolverError):
    """Not enough pose samples to run the solver."""


class NoSolverAvailableError(HandEyeError):
    """No hand-eye solver is selected or it failed to initialize."""


# Workflow and collaborators

class WorkflowBusyError(HandEyeError):
    """A plan or execute operation is already outstanding."""


class TransformLookupError(HandEyeError):
    """A transform between two frames could not be looked up."""

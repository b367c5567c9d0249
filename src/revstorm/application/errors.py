class EngineError(RuntimeError):
    pass


class NarrativeTransportError(EngineError):
    """The collaborator call did not complete. Canonical state is untouched and a retry is safe."""


class MalformedProposalError(EngineError):
    """The collaborator answered, but the document cannot be read as a narrative proposal."""


class RepairFailedError(EngineError):
    """A foreign save is too damaged to reconstruct a canonical state."""


class InteractionStateError(EngineError):
    pass

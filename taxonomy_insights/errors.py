"""
Error Taxonomy

Hard failures are exceptions. Recoverable anomalies are warning objects
recorded on diagnostics and logged, never raised by the core.
"""

from typing import Optional, Sequence


class TaxonomyError(Exception):
    """Base class for taxonomy structure errors"""


class TaxonomyConflictError(TaxonomyError):
    """The same normalized path id implies two different parent chains"""
    
    def __init__(
        self,
        node_id: str,
        existing_chain: Sequence[str],
        conflicting_chain: Sequence[str],
    ):
        self.node_id = node_id
        self.existing_chain = tuple(existing_chain)
        self.conflicting_chain = tuple(conflicting_chain)
        super().__init__(
            f"Node id '{node_id}' already maps to "
            f"'{' > '.join(self.existing_chain)}', "
            f"cannot also map to '{' > '.join(self.conflicting_chain)}'"
        )


class PipelineWarning(UserWarning):
    """Base class for non-fatal anomalies surfaced through diagnostics"""
    
    def __init__(self, message: str, subject: Optional[str] = None):
        self.subject = subject
        super().__init__(message)
    
    def __eq__(self, other: object) -> bool:
        return (
            type(self) is type(other)
            and self.args == other.args
            and self.subject == other.subject
        )
    
    def __hash__(self) -> int:
        return hash((type(self).__name__, self.args, self.subject))


class DanglingParentWarning(PipelineWarning):
    """Node references a parent that is not in the tree"""


class CyclicParentWarning(PipelineWarning):
    """Node's parent chain loops back on itself"""


class InvalidGtinWarning(PipelineWarning):
    """GTIN-like key failed length or checksum validation"""


class MalformedUrlWarning(PipelineWarning):
    """URL could not be parsed"""


class UnmatchedFact(PipelineWarning):
    """Fact subject key resolved to nothing"""


class UnattributedFact(PipelineWarning):
    """Fact matched a product that is not placed on any taxonomy node"""

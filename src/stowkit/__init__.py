"""stowkit -- adaptive column classification and stowage ordering for cargo lists.

Public API exports for models, enums, errors, configuration, the pattern
library, and the classification and block-reordering components.
"""

from stowkit.assigner import RoleAssigner
from stowkit.blocks import BlockExtractor
from stowkit.cells import Cell, CellKind, as_cell, cell_text, is_blank
from stowkit.config import RolePolicy, StowkitConfig
from stowkit.errors import (
    BlockIntegrityViolation,
    ErrorCode,
    LowConfidence,
    NoRoleAssigned,
    StowError,
    StowkitException,
    StructureError,
)
from stowkit.extraction import extract_role_values, merge_value_maps
from stowkit.grids import copy_grid, grid_from_dataframe, grid_from_worksheet
from stowkit.headers import HeaderAnalyzer
from stowkit.injector import BlockInjector
from stowkit.llm_classifier import LLMColumnClassifier
from stowkit.models import (
    AmbiguousColumn,
    Block,
    BlockAudit,
    BlockLayout,
    ColumnProfile,
    ContainerIdStatus,
    ExtractionResult,
    HeaderRegion,
    InjectionResult,
    InjectionStrategy,
    KeyedBlock,
    ReorderResult,
    RoleAssignment,
    RoleMatch,
    RoleScore,
    SemanticRole,
    SemanticSignal,
    SheetCandidate,
    SheetSelection,
    StowagePosition,
    StowageRunResult,
    confidence_level,
)
from stowkit.ordering import (
    MISSING_STOWAGE_KEY,
    derive_stowage_key,
    format_stowage,
    sort_blocks,
)
from stowkit.patterns import (
    classify_container_id,
    compute_check_digit,
    detect_container_id,
    is_stowage,
    is_valid_container_id,
    parse_dg_class,
    parse_stowage,
    parse_temperature,
    parse_un_number,
)
from stowkit.profiler import ColumnProfiler
from stowkit.protocols import LLMBackend, SemanticClassifier
from stowkit.reorder import BlockReorderer, StowageSorter
from stowkit.selector import SheetSelector

__all__ = [
    # Enums
    "CellKind",
    "ContainerIdStatus",
    "InjectionStrategy",
    "SemanticRole",
    # Config
    "RolePolicy",
    "StowkitConfig",
    # Errors
    "BlockIntegrityViolation",
    "ErrorCode",
    "LowConfidence",
    "NoRoleAssigned",
    "StowError",
    "StowkitException",
    "StructureError",
    # Cells and grids
    "Cell",
    "as_cell",
    "cell_text",
    "is_blank",
    "copy_grid",
    "grid_from_dataframe",
    "grid_from_worksheet",
    # Pattern library
    "classify_container_id",
    "compute_check_digit",
    "detect_container_id",
    "is_stowage",
    "is_valid_container_id",
    "parse_dg_class",
    "parse_stowage",
    "parse_temperature",
    "parse_un_number",
    # Classification models
    "AmbiguousColumn",
    "ColumnProfile",
    "ExtractionResult",
    "HeaderRegion",
    "RoleAssignment",
    "RoleMatch",
    "RoleScore",
    "SemanticSignal",
    "SheetCandidate",
    "SheetSelection",
    "StowagePosition",
    "confidence_level",
    # Block models
    "Block",
    "BlockAudit",
    "BlockLayout",
    "InjectionResult",
    "KeyedBlock",
    "ReorderResult",
    "StowageRunResult",
    # Ordering
    "MISSING_STOWAGE_KEY",
    "derive_stowage_key",
    "format_stowage",
    "sort_blocks",
    # Components
    "BlockExtractor",
    "BlockInjector",
    "BlockReorderer",
    "ColumnProfiler",
    "HeaderAnalyzer",
    "LLMColumnClassifier",
    "RoleAssigner",
    "SheetSelector",
    "StowageSorter",
    "extract_role_values",
    "merge_value_maps",
    # Protocols
    "LLMBackend",
    "SemanticClassifier",
]

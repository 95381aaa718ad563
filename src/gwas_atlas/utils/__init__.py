"""Shared utility modules."""

from .chromosomes import AUTOSOMES, normalize_chromosome
from .validators import (
    validate_chromosome,
    validate_identifier,
    validate_p_value,
    validate_position,
    validate_snp_id,
)

__all__ = [
    "AUTOSOMES",
    "normalize_chromosome",
    "validate_chromosome",
    "validate_identifier",
    "validate_p_value",
    "validate_position",
    "validate_snp_id",
]

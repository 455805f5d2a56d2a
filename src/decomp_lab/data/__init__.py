"""Data module for scalar fields and packed matrix storage."""

from decomp_lab.data.fields import (
    FieldSpec,
    FieldTraits,
    ScalarField,
    as_field_array,
    field_of,
    get_dtype,
    get_eps,
    get_norm_dtype,
    get_spec,
    get_tolerance,
    get_traits,
    list_available_fields,
)
from decomp_lab.data.packed import (
    HermitianBandMatrix,
    HermitianMatrix,
    LowerTriangularMatrix,
    PackedMatrix,
    SkewMatrix,
    SymmetricBandMatrix,
    SymmetricMatrix,
    UpperTriangularMatrix,
    to_hermitian,
    to_hermitian_band,
    to_lower_triangular,
    to_skew,
    to_symmetric,
    to_symmetric_band,
    to_upper_triangular,
)
from decomp_lab.data.proxies import (
    CellRef,
    ConjugateRef,
    NegateRef,
    ReadOnlyConjugateRef,
    ReadOnlyRef,
    SlotRef,
)

__all__ = [
    # Scalar fields
    "FieldSpec",
    "FieldTraits",
    "ScalarField",
    "as_field_array",
    "field_of",
    "get_dtype",
    "get_eps",
    "get_norm_dtype",
    "get_spec",
    "get_tolerance",
    "get_traits",
    "list_available_fields",
    # Packed storage
    "HermitianBandMatrix",
    "HermitianMatrix",
    "LowerTriangularMatrix",
    "PackedMatrix",
    "SkewMatrix",
    "SymmetricBandMatrix",
    "SymmetricMatrix",
    "UpperTriangularMatrix",
    "to_hermitian",
    "to_hermitian_band",
    "to_lower_triangular",
    "to_skew",
    "to_symmetric",
    "to_symmetric_band",
    "to_upper_triangular",
    # Proxies
    "CellRef",
    "ConjugateRef",
    "NegateRef",
    "ReadOnlyConjugateRef",
    "ReadOnlyRef",
    "SlotRef",
]

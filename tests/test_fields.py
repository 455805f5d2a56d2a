"""Tests for fields module."""

import numpy as np
import pytest

from decomp_lab.data.fields import (
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
from decomp_lab.data.packed import HermitianMatrix


class TestScalarField:
    """Tests for ScalarField enum."""

    def test_all_fields_defined(self) -> None:
        """Verify all expected fields exist."""
        expected = {"float32", "float64", "complex64", "complex128"}
        actual = {f.value for f in ScalarField}
        assert actual == expected

    def test_list_available_fields(self) -> None:
        """Real fields are listed before complex ones."""
        fields = list_available_fields()
        assert len(fields) == 4
        assert fields[:2] == [ScalarField.FLOAT32, ScalarField.FLOAT64]


class TestGetSpec:
    """Tests for get_spec function."""

    @pytest.mark.parametrize(
        "field,expected_bits",
        [
            (ScalarField.FLOAT32, 32),
            (ScalarField.FLOAT64, 64),
            (ScalarField.COMPLEX64, 64),
            (ScalarField.COMPLEX128, 128),
            ("float64", 64),
            ("Complex128", 128),
        ],
    )
    def test_get_spec_bits(self, field: ScalarField | str, expected_bits: int) -> None:
        """Verify bit counts for each field."""
        assert get_spec(field).bits == expected_bits

    @pytest.mark.parametrize(
        "alias,expected",
        [
            ("s", ScalarField.FLOAT32),
            ("double", ScalarField.FLOAT64),
            ("c8", ScalarField.COMPLEX64),
            ("z", ScalarField.COMPLEX128),
            ("c16", ScalarField.COMPLEX128),
        ],
    )
    def test_aliases(self, alias: str, expected: ScalarField) -> None:
        """LAPACK prefixes and short names resolve to fields."""
        assert get_spec(alias).field == expected

    def test_bytes_property(self) -> None:
        """Bytes should be bits / 8."""
        assert get_spec("complex128").bytes == 16
        assert get_spec("float32").bytes == 4

    def test_norm_field(self) -> None:
        """Complex fields map to the real field of the same precision."""
        assert get_spec("complex64").norm_field == ScalarField.FLOAT32
        assert get_spec("float64").norm_field == ScalarField.FLOAT64

    def test_unknown_field_raises(self) -> None:
        """Unknown names should raise ValueError."""
        with pytest.raises(ValueError, match="Unknown scalar field"):
            get_spec("float16")


class TestNormTypes:
    """Tests for dtype and norm dtype lookups."""

    @pytest.mark.parametrize(
        "field,dtype,norm_dtype",
        [
            ("float32", np.float32, np.float32),
            ("float64", np.float64, np.float64),
            ("complex64", np.complex64, np.float32),
            ("complex128", np.complex128, np.float64),
        ],
    )
    def test_dtypes(self, field: str, dtype: type, norm_dtype: type) -> None:
        """Norm type of a complex field is its real counterpart."""
        assert get_dtype(field) == dtype
        assert get_norm_dtype(field) == norm_dtype

    def test_eps(self) -> None:
        """Machine epsilon follows the norm type."""
        assert get_eps("float64") == pytest.approx(2.22e-16)
        assert get_eps("complex64") == get_eps("float32")


class TestTolerances:
    """Tests for get_tolerance function."""

    def test_single_looser_than_double(self) -> None:
        """Single precision tolerances are looser."""
        assert get_tolerance("float32") > get_tolerance("float64")
        assert get_tolerance("complex64", "orthonormality_tol") > get_tolerance(
            "complex128", "orthonormality_tol"
        )

    def test_max_ql_iterations(self) -> None:
        """QL iteration limit matches LAPACK's MAXIT."""
        for field in ScalarField:
            assert get_tolerance(field, "max_ql_iterations") == 30

    def test_unknown_tolerance_type_raises(self) -> None:
        """Unknown tolerance kinds should raise ValueError."""
        with pytest.raises(ValueError, match="Unknown tolerance type"):
            get_tolerance("float64", "residual_tol")


class TestFieldTraits:
    """Tests for injected field operations."""

    def test_real_conjugate_is_identity(self) -> None:
        """Conjugation does nothing for real fields."""
        traits = get_traits("float64")
        a = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert traits.conjugate(a) is a
        np.testing.assert_array_equal(traits.adjoint(a), a.T)

    def test_complex_conjugate(self) -> None:
        """Conjugation and real part for complex fields."""
        traits = get_traits(ScalarField.COMPLEX128)
        assert traits.conjugate(1 + 2j) == 1 - 2j
        assert traits.real_part(1 + 2j) == 1.0
        a = np.array([[1j, 2.0], [3.0, 4.0 - 1j]])
        np.testing.assert_array_equal(traits.adjoint(a), a.conj().T)

    def test_traits_eps_matches_numpy(self) -> None:
        """Traits carry the exact numpy epsilon of the norm type."""
        assert get_traits("complex64").eps == float(np.finfo(np.float32).eps)


class TestFieldOf:
    """Tests for field_of and as_field_array."""

    @pytest.mark.parametrize(
        "dtype,expected",
        [
            (np.float32, ScalarField.FLOAT32),
            (np.float64, ScalarField.FLOAT64),
            (np.complex64, ScalarField.COMPLEX64),
            (np.complex128, ScalarField.COMPLEX128),
            (np.int32, ScalarField.FLOAT64),
            (np.bool_, ScalarField.FLOAT64),
        ],
    )
    def test_field_of_arrays(self, dtype: type, expected: ScalarField) -> None:
        """Supported dtypes map to fields; integers promote to float64."""
        assert field_of(np.zeros(3, dtype=dtype)) == expected

    def test_field_of_unsupported_dtype(self) -> None:
        """float16 has no field."""
        with pytest.raises(ValueError, match="Unknown scalar field for dtype"):
            field_of(np.zeros(2, dtype=np.float16))

    def test_field_of_packed_matrix(self) -> None:
        """Packed matrices report their own field."""
        assert field_of(HermitianMatrix(3, "complex64")) == ScalarField.COMPLEX64

    def test_as_field_array_copies(self) -> None:
        """Conversion copies and casts to the field dtype."""
        a = np.arange(4).reshape(2, 2)
        out = as_field_array(a, ScalarField.COMPLEX128)
        assert out.dtype == np.complex128
        out[0, 0] = 9
        assert a[0, 0] == 0

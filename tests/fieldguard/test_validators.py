"""Tests for fieldguard.validators and fieldguard.filters modules."""

from enum import Enum, IntEnum

import pytest

from fieldguard import filters
from fieldguard.validators import (
    alpha,
    alpha_num,
    between,
    boolean,
    email,
    enum,
    float_value,
    full_url,
    greater_than,
    integer,
    length,
    less_than,
    loose_enum,
    max_length,
    max_value,
    min_length,
    min_value,
    not_in,
    number,
    regexp,
    required,
    string,
    string_number,
    url,
)


class Status(int):
    pass


class Mode(str):
    pass


class Level(IntEnum):
    LOW = 1
    HIGH = 2


class Flavor(str, Enum):
    SWEET = "sweet"


class TestPresenceAndType:
    """Tests for required and type validators."""

    def test_required(self):
        """Test required rejects empty values."""
        assert required("x")
        assert required(1)
        assert not required("")
        assert not required(None)
        assert not required(0)
        assert not required([])

    def test_string(self):
        """Test string with optional length bounds."""
        assert string("abc")
        assert not string(1)
        assert string("abc", "2", "5")
        assert not string("a", "2")
        assert not string("abcdef", "1", "5")

    def test_integer(self):
        """Test integers and integer strings."""
        assert integer(5)
        assert integer("-12")
        assert not integer("1.5")
        assert not integer(1.5)
        assert not integer(True)
        assert integer(20, "18", "150")
        assert not integer(10, "18")

    def test_float(self):
        """Test floats, ints and float strings."""
        assert float_value(123.0)
        assert float_value(3)
        assert float_value("1.5")
        assert float_value("1e3")
        assert not float_value("abc")
        assert not float_value(True)

    def test_boolean(self):
        """Test bools and flag strings."""
        assert boolean(False)
        assert boolean("on")
        assert not boolean("maybe")
        assert not boolean("")
        assert not boolean(1)

    def test_number(self):
        """Test numbers and numeric strings."""
        assert number(1)
        assert number("2.5")
        assert not number("x")
        assert not number(True)


class TestComparison:
    """Tests for numeric comparison validators."""

    def test_min_max(self):
        """Test raw string limits compare numerically."""
        assert min_value(18, "18")
        assert not min_value(10, "18")
        assert max_value("150", 150)
        assert not max_value(151, "150")

    def test_gt_lt(self):
        """Test strict comparisons, floats included."""
        assert greater_than(0.01, 0)
        assert not greater_than(0, 100)
        assert less_than(1, "1.5")
        assert not less_than(2, 2)

    def test_between(self):
        """Test inclusive ranges."""
        assert between(5, "1", "10")
        assert between(10, 1, 10)
        assert not between(11, 1, 10)

    def test_non_numeric_value(self):
        """Test non-numeric values fail instead of raising."""
        assert not min_value("abc", 1)
        assert not between(None, 1, 2)


class TestLength:
    """Tests for length validators."""

    def test_min_max_len(self):
        """Test length bounds on strings and collections."""
        assert min_length("inhere", "6")
        assert not min_length("tom", "6")
        assert max_length([1, 2], 2)
        assert not max_length("https://github.com", "6")

    def test_len(self):
        """Test exact length."""
        assert length("abc", "3")
        assert not length("abcd", 3)

    def test_unsized(self):
        """Test values without length fail."""
        assert not min_length(5, 1)


class TestMembership:
    """Tests for enum, not_in and loose_enum."""

    def test_raw_tokens_coerced_to_plain_types(self):
        """Test raw string candidates match plain int, float and str values."""
        assert enum(3, "1", "2", "3", "4")
        assert enum(1.5, "1.5")
        assert enum("register", "register", "forget_password")
        assert not enum("fish", "henry", "jim")

    def test_collection_argument(self):
        """Test a single collection argument is the candidate set."""
        assert enum(2, [1, 2, 3])
        assert not enum(5, (1, 2, 3))

    def test_type_sensitive(self):
        """Test candidates must share the value's exact type."""
        assert not enum(1, [1.0])
        assert not enum(True, [1])
        assert not enum("1", [1])

    def test_named_int_type_is_not_member(self):
        """Test an int subclass does not match plain candidates."""
        assert not enum(Status(1), "1", "2", "3", "4")
        assert not enum(Status(1), [1, 2, 3, 4])
        assert not enum(Level.LOW, [1, 2])

    def test_named_str_type_is_not_member(self):
        """Test a str subclass does not match plain candidates."""
        assert not enum(Mode("abc"), "abc", "def")

    def test_same_named_type_is_member(self):
        """Test candidates of the same named type match."""
        assert enum(Status(1), [Status(1), Status(2)])

    def test_loose_enum(self):
        """Test loose_enum reduces named types first."""
        assert loose_enum(Status(1), [1, 2, 3, 4])
        assert loose_enum(Mode("abc"), "abc", "def")
        assert loose_enum(Level.HIGH, "1", "2")
        assert loose_enum(Flavor.SWEET, ["sweet"])
        assert not loose_enum(Status(9), [1, 2])

    def test_not_in(self):
        """Test not_in is the inverse of enum."""
        assert not_in(5, "1", "2")
        assert not not_in(1, "1", "2")


class TestFormats:
    """Tests for format validators."""

    def test_email(self):
        """Test email syntax checking."""
        assert email("fish_yww@163.com")
        assert email("adc@xx.com")
        assert not email("not-an-email")
        assert not email("a@")
        assert not email(12)

    def test_url(self):
        """Test url accepts references, relative ones included."""
        assert url("https://github.com/gookit/validate")
        assert url("123")
        assert not url("")
        assert not url("some url")
        assert not url(None)

    def test_full_url(self):
        """Test full_url requires a scheme and a host."""
        assert full_url("https://github.com/gookit/validate")
        assert full_url("ftp://files.host.org/a.txt")
        assert not full_url("123")
        assert not full_url("github.com/gookit")
        assert not full_url("mailto:someone@host.org")

    def test_string_number(self):
        """Test numeric strings and numbers."""
        assert string_number("10")
        assert string_number(10)
        assert not string_number("1.25")
        assert not string_number(12.5)
        assert not string_number("10\n")
        assert not string_number("-1")
        assert not string_number("1a")
        assert not string_number(True)
        assert not string_number(None)

    def test_regexp(self):
        """Test pattern search."""
        assert regexp("abc123", r"\d+")
        assert regexp(2024, r"^\d{4}$")
        assert not regexp("abc", r"\d")
        assert not regexp(None, r".*")

    def test_alpha(self):
        """Test alphabetic checks."""
        assert alpha("abcXYZ")
        assert not alpha("abc1")
        assert alpha_num("abc1")
        assert not alpha_num("abc_1")


class TestFilters:
    """Tests for built-in filters."""

    def test_trim_family(self):
        """Test trimming variants."""
        assert filters.trim("  ABcd   ") == "ABcd"
        assert filters.trim("--x--", "-") == "x"
        assert filters.ltrim("  x ") == "x "
        assert filters.rtrim("  x ") == "  x"

    def test_case(self):
        """Test case filters."""
        assert filters.lower("ABcd") == "abcd"
        assert filters.upper("ab") == "AB"

    def test_non_strings_untouched(self):
        """Test string filters pass other values through."""
        assert filters.trim(5) == 5
        assert filters.lower(None) is None

    def test_conversions(self):
        """Test conversion filters."""
        assert filters.to_integer("12") == 12
        assert filters.to_floating("0.5") == 0.5
        assert filters.to_string(10) == "10"
        assert filters.to_boolean("yes") is True

    def test_conversion_failure(self):
        """Test failed conversions raise ValueError."""
        with pytest.raises(ValueError):
            filters.to_integer("abc")
        with pytest.raises(ValueError):
            filters.to_boolean("maybe")

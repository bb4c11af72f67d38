"""Tests for fieldguard.messages module."""

from fieldguard.config import ValidateOptions
from fieldguard.messages import (
    DEFAULT_MESSAGES,
    FILTER_ERROR_KEY,
    VALIDATE_ERROR_KEY,
    MessageResolver,
    format_arg,
    render,
)


class TestRender:
    """Tests for template rendering."""

    def test_field_placeholder(self):
        """Test {field} is replaced by the display name."""
        assert render("{field} is required and not empty", "a") == "a is required and not empty"

    def test_positional_arguments(self):
        """Test placeholders take arguments in order."""
        assert render("{field} value must be in the range %v - %v", "age", ["1", "10"]) == (
            "age value must be in the range 1 - 10"
        )

    def test_single_placeholder_many_arguments(self):
        """Test a lone placeholder renders all arguments as a list."""
        assert render(DEFAULT_MESSAGES["in"], "In2.Org.Company", ["A", "B", "C", "D"]) == (
            "In2.Org.Company value must be in the enum [A B C D]"
        )

    def test_numeric_argument(self):
        """Test %d takes a raw token or a number."""
        assert render("OO! avatar max len is %d", "Avatar", ["6"]) == "OO! avatar max len is 6"
        assert render(DEFAULT_MESSAGES["gt"], "a", [100]) == "a value should greater the 100"

    def test_missing_arguments_left_in_place(self):
        """Test extra placeholders are kept when arguments run out."""
        assert render("%v and %v", "f", ["x"]) == "x and %v"

    def test_no_placeholders(self):
        """Test fixed text ignores arguments."""
        assert render("OO! nickname min len is 6", "Nickname", ["6"]) == "OO! nickname min len is 6"

    def test_field_name_with_placeholder(self):
        """Test placeholders inside the field name are not filled."""
        assert render("{field} must be at least %d", "%d%s rate", ["5"]) == "%d%s rate must be at least 5"
        assert render("{field} value must be in the enum %v", "%v", ["A", "B"]) == (
            "%v value must be in the enum [A B]"
        )

    def test_format_arg(self):
        """Test argument rendering."""
        assert format_arg([1, "a"]) == "[1 a]"
        assert format_arg(True) == "true"
        assert format_arg(2.5) == "2.5"


class TestMessageResolver:
    """Tests for MessageResolver precedence."""

    def test_builtin_default(self):
        """Test defaults apply when nothing is registered."""
        resolver = MessageResolver()
        assert resolver.resolve("a", "gt", args=(100,)) == "a value should greater the 100"

    def test_field_rule_beats_rule(self):
        """Test Field.rule messages win over rule messages."""
        resolver = MessageResolver()
        resolver.add_messages({"min": "too small", "Age.min": "too young"})
        assert resolver.resolve("Age", "min", args=("18",)) == "too young"
        assert resolver.resolve("Height", "min", args=("1",)) == "too small"

    def test_inline_beats_everything(self):
        """Test the rule's own message wins."""
        resolver = MessageResolver()
        resolver.add_messages({"Age.min": "too young"})
        assert resolver.resolve("Age", "min", inline="inline %d", args=("18",)) == "inline 18"

    def test_field_tag_messages(self):
        """Test a field's own messages act like Field.rule."""
        resolver = MessageResolver()
        resolver.add_field_messages("Nickname", {"required": "cannot be empty", "": "fallback"})
        resolver.add_messages({"required": "generic required"})
        assert resolver.resolve("Nickname", "required") == "cannot be empty"

    def test_rule_beats_field_default(self):
        """Test a rule message wins over the field's default message."""
        resolver = MessageResolver()
        resolver.add_field_messages("Avatar", {"": "OO! avatar max len is %d"})
        assert resolver.resolve("Avatar", "maxLen", args=("6",)) == "OO! avatar max len is 6"
        resolver.add_messages({"maxLen": "rule level"})
        assert resolver.resolve("Avatar", "maxLen", args=("6",)) == "rule level"

    def test_global_override(self):
        """Test option-level messages sit above the defaults."""
        options = ValidateOptions(messages={"required": "{field} must be filled"})
        resolver = MessageResolver(options)
        assert resolver.resolve("name", "required") == "name must be filled"
        resolver.add_messages({"required": "local"})
        assert resolver.resolve("name", "required") == "local"

    def test_alias_and_canonical_names(self):
        """Test messages match the written or the canonical rule name."""
        resolver = MessageResolver()
        resolver.add_messages({"minLen": "short"})
        assert resolver.resolve("name", "min_len", canonical="minLen") == "short"
        fresh = MessageResolver()
        assert fresh.resolve("name", "min_len", canonical="minLen", args=("3",)) == (
            "name min length is 3"
        )

    def test_fallback_and_generic(self):
        """Test the registered message, then the generic one."""
        resolver = MessageResolver()
        assert resolver.resolve("n", "even", fallback="{field} must be even") == "n must be even"
        assert resolver.resolve("n", "even") == "n did not pass validate"

    def test_filter_default(self):
        """Test the filter failure message."""
        assert MessageResolver().resolve("age", FILTER_ERROR_KEY) == "age data is invalid"
        assert VALIDATE_ERROR_KEY in DEFAULT_MESSAGES

    def test_translations(self):
        """Test translations replace the display name."""
        resolver = MessageResolver()
        resolver.add_messages({"required": "{field}不能为空"})
        resolver.add_translations({"Name": "用户名"})
        assert resolver.resolve("Name", "required") == "用户名不能为空"
        assert resolver.resolve("Email", "required", display="email") == "email不能为空"
        assert resolver.translations == {"Name": "用户名"}

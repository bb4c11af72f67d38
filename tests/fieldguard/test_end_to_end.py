"""End-to-end validation scenarios over records and mappings."""

from dataclasses import dataclass, field

from fieldguard import configure, loose_enum, new, reset_options
from fieldguard.accessor import rules_field
from fieldguard.exceptions import (
    AccessError,
    ConvertFailedError,
    FieldNotFoundError,
    NotSettableError,
)
from fieldguard.session import from_json, from_mapping


# =============================================================================
# Records
# =============================================================================


@dataclass(frozen=True)
class FrozenMeasurement:
    A: float = rules_field(0.0, validate="float")


@dataclass
class Measurement:
    A: float = rules_field(0.0, validate="float")


@dataclass
class SmsRequest:
    country_code: str = rules_field(
        "", validate="required", filter="trim|lower", json="countryCode"
    )
    phone: str = rules_field("", validate="required", filter="trim", json="phone")
    sms_type: str = rules_field(
        "",
        validate="required|in:register,forget_password,set_pay_password,"
        "reset_pay_password,reset_password",
        filter="trim",
        json="type",
    )


@dataclass
class ProfileForm:
    Nickname: str = rules_field("", validate="string", filter="trim", json="nickname")
    Avatar: str = rules_field("", validate="required|url", filter="trim", json="avatar")


@dataclass
class StrictProfileForm:
    Nickname: str = rules_field("", validate="string", filter="trim", json="nickname")
    Avatar: str = rules_field("", validate="required|fullUrl", filter="trim", json="avatar")


@dataclass
class LengthForm:
    Nickname: str = rules_field("", validate="minLen:6", message="OO! nickname min len is 6")
    Avatar: str = rules_field("", validate="maxLen:6", message="OO! avatar max len is %d")


@dataclass
class ColonMessageForm:
    Nickname: str = rules_field("", validate="minLen:6", message="Error: nickname too short")
    Age: int = rules_field(0, validate="checkAge:1,2", message="checkAge:age not allowed")


@dataclass
class NicknameForm:
    Nickname: str = rules_field(
        "",
        validate="required|minLen:6",
        message="required:OO! nickname cannot be empty!|minLen:OO! nickname min len is %d",
    )


@dataclass
class RegistrationForm:
    Name: str = rules_field("", validate="required|minLen:7", json="name", form="username")
    Email: str = rules_field("", validate="email", json="email", form="email")
    Age: int = rules_field(0, validate="required|int|min:18|max:150", json="age", form="age")

    def messages(self):
        return {
            "required": "{field}不能为空",
            "Name.minLen": "用户名最少7位",
            "Name.required": "用户名不能为空",
            "Email.email": "邮箱格式不正确",
            "Age.min": "年龄最少18岁",
            "Age.max": "年龄最大150岁",
        }

    def translates(self):
        return {"Name": "用户名", "Email": "邮箱", "Age": "年龄"}


@dataclass
class NameChoice:
    Name: str | None = rules_field(None, validate="in:henry,jim")


@dataclass
class Organization:
    Company: str = rules_field("", validate="in:A,B,C,D")


@dataclass
class Contact:
    Email: str = rules_field("", validate="email", filter="trim|lower")
    Age: int | None = rules_field(None, validate="in:1,2,3,4")


@dataclass
class Member:
    Info: Contact | None = rules_field(None, validate="required", embedded=True)
    Org: Organization = rules_field(default_factory=Organization, embedded=True)
    Name: str = rules_field("", validate="required|string", filter="trim|lower")
    Sex: str = rules_field("", validate="string")


@dataclass
class PlainMember:
    Name: str = rules_field("", validate="required|string", filter="trim|lower")
    In: Contact = field(default_factory=Contact)
    Sex: str = rules_field("", validate="string")


@dataclass
class Membership:
    Org: Organization = rules_field(default_factory=Organization, embedded=True)
    Sub: Contact | None = None


@dataclass
class Account:
    In2: Membership | None = rules_field(None, validate="required")


@dataclass
class UserDto:
    Name: str = rules_field("", validate="required")
    Sex: bool | None = rules_field(None, validate="required")


class Status(int):
    pass


class Mode(str):
    pass


def check_age(value, *ints: int) -> bool:
    return loose_enum(value, ints)


# =============================================================================
# Tests
# =============================================================================


class TestSetAndRawOnRecords:
    """Tests for reading and writing a float field."""

    def test_frozen_record(self):
        """Test a frozen record validates but refuses writes."""
        session = new(FrozenMeasurement(123.0))
        assert session.validate()
        assert session.safe_val("A") == 123.0
        assert session.raw("A") == (123.0, True)
        assert isinstance(session.set("A", 234.0), NotSettableError)
        assert isinstance(session.set("B", 234), AccessError)

    def test_mutable_record(self):
        """Test writes, widening and conversion failure on a mutable record."""
        measurement = Measurement(123.0)
        session = new(measurement)
        assert session.set("A", 234.0) is None
        assert session.raw("A") == (234.0, True)

        assert session.set("A", 23) is None
        value, found = session.raw("A")
        assert found and value == 23.0 and isinstance(value, float)

        error = session.set("A", "abc")
        assert isinstance(error, ConvertFailedError)
        assert error.message == "convert value type error"
        assert measurement.A == 23.0

        assert isinstance(session.set("B", 234), FieldNotFoundError)

    def test_number_into_string_field(self):
        """Test a number written to a str field is stored as text."""
        form = ProfileForm("tom", "https://github.com")
        session = new(form)
        assert session.set("Nickname", 42) is None
        assert form.Nickname == "42"
        assert session.raw("Nickname") == ("42", True)
        assert isinstance(session.set("Nickname", [1]), ConvertFailedError)


class TestFilteredWriteBack:
    """Tests for filters updating the record."""

    def test_trim_and_lower(self):
        """Test filtered values land in safe data and the record."""
        request = SmsRequest(" ABcd   ", "13677778888  ", "register")
        session = new(request)
        assert session.validate()
        safe = session.safe_data()
        assert safe["country_code"] == "abcd"
        assert safe["phone"] == "13677778888"
        assert request.country_code == "abcd"
        assert request.phone == "13677778888"

    def test_filtering_twice_changes_nothing(self, log_buffer):
        """Test trim|lower on an already filtered value is a no-op."""
        request = SmsRequest("  ABcd  ", "13677778888", "register")
        assert new(request).validate()
        assert request.country_code == "abcd"
        written = [
            r.extra["field"] for r in log_buffer.records if r.message == "Wrote filtered value back"
        ]
        assert written == ["country_code"]

        log_buffer.records.clear()
        session = new(request)
        assert session.validate()
        assert request.country_code == "abcd"
        assert session.safe_val("country_code") == "abcd"
        assert not [r for r in log_buffer.records if r.message == "Wrote filtered value back"]


class TestUrlRules:
    """Tests for url and fullUrl with aliases on and off."""

    def test_url_accepts_relative_reference(self):
        """Test a bare token passes url."""
        assert new(ProfileForm("123nickname111", "123")).validate()

    def test_full_url_with_declared_names(self):
        """Test messages use declared names when aliases are disabled."""
        configure(field_tag="")
        session = new(StrictProfileForm("123nickname111", "123"))
        assert not session.validate()
        assert len(session.errors) == 1
        assert session.errors.one() == "Avatar must be an valid full URL address"

    def test_full_url_with_alias(self):
        """Test messages use the alias once options are reset."""
        configure(field_tag="")
        reset_options()
        session = new(StrictProfileForm("123nickname111", "123"))
        assert not session.validate()
        assert len(session.errors) == 1
        assert session.errors.one() == "avatar must be an valid full URL address"


class TestFieldMessages:
    """Tests for messages declared on fields."""

    def test_default_field_message(self):
        """Test an unprefixed message covers every rule of the field."""
        session = new(LengthForm("tom", "https://github.com/gookit/validate/issues/22"))
        assert not session.validate()
        assert session.errors.field_one("Nickname") == "OO! nickname min len is 6"

        session = new(LengthForm("inhere", "some url"))
        assert not session.validate()
        assert session.errors.field_one("Avatar") == "OO! avatar max len is 6"

    def test_default_message_with_colon(self):
        """Test a default message whose text contains a colon."""
        session = new(ColonMessageForm("tom", 1))
        session.add_validator("checkAge", check_age)
        assert not session.validate()
        assert session.errors.field_one("Nickname") == "Error: nickname too short"

    def test_field_message_for_session_validator(self):
        """Test a field message keyed by a validator added after construction."""
        session = new(ColonMessageForm("inhere", 5))
        session.add_validator("checkAge", check_age)
        assert not session.validate()
        assert session.errors.field_one("Age") == "age not allowed"

    def test_per_rule_field_messages(self):
        """Test rule-prefixed messages pick the failing rule."""
        session = new(NicknameForm(""))
        assert not session.validate()
        assert session.errors.field_one("Nickname") == "OO! nickname cannot be empty!"

        session = new(NicknameForm("tom"))
        assert not session.validate()
        assert session.errors.field_one("Nickname") == "OO! nickname min len is 6"

    def test_record_messages_and_translations(self):
        """Test Field.rule messages supplied by the record."""
        form = RegistrationForm(Name="i am tom", Email="adc@xx.com", Age=10)
        session = new(form)
        assert not session.validate()
        assert session.errors.one() == "年龄最少18岁"
        assert "年龄最少18岁" in str(session.errors)

    def test_translated_field_name(self):
        """Test translations fill the field placeholder."""
        session = new(RegistrationForm(Name="", Email="adc@xx.com", Age=20))
        assert not session.validate()
        assert session.errors.one() == "用户名不能为空"
        session = new(RegistrationForm(Name="i am tom", Email="adc@xx.com", Age=0))
        assert not session.validate()
        assert session.errors.one() == "年龄不能为空"

    def test_session_rule_message(self):
        """Test a rule-level message added to the session."""
        session = from_mapping({"title": "1"})
        session.string_rule("title", "in:2,3")
        session.add_messages({"in": "自定义错误"})
        assert not session.validate()
        assert session.errors.one() == "自定义错误"


class TestMembership:
    """Tests for in with plain and named types."""

    def test_numeric_string_from_json(self):
        """Test str_num accepts a JSON number."""
        session = from_json('{\n   "cost_type": 10\n}')
        session.string_rule("cost_type", "str_num")
        assert session.validate()
        assert len(session.errors) == 0

    def test_decimal_string_is_not_digits(self):
        """Test str_num rejects a decimal string."""
        session = from_mapping({"n": "12.5"})
        session.string_rule("n", "str_num")
        assert session.validate() is False
        assert session.errors.one() == "n value must be a numeric string"

    def test_custom_validator_with_named_int(self):
        """Test a custom validator can compare a named int loosely."""
        session = from_mapping({"age": Status(1)})
        session.add_validator("checkAge", check_age)
        session.string_rule("age", "required|checkAge:1,2,3,4")
        assert session.validate()

    def test_named_int_not_in_plain_enum(self):
        """Test in does not match a named int against plain candidates."""
        session = from_mapping({"age": Status(1)})
        session.string_rules({"age": "required|in:1,2,3,4"})
        assert not session.validate()
        assert session.errors.one() == "age value must be in the enum [1 2 3 4]"

    def test_named_str_not_in_plain_enum(self):
        """Test in does not match a named str against plain candidates."""
        session = from_mapping({"mode": Mode("abc")})
        session.string_rules({"mode": "required|in:abc,def"})
        assert not session.validate()

    def test_optional_string_field(self):
        """Test in on an optional string field."""
        assert new(NameChoice(Name="henry")).validate()
        assert not new(NameChoice(Name="fish")).validate()
        assert new(NameChoice()).validate()


class TestNestedRecords:
    """Tests for nested and embedded records."""

    def test_embedded_records(self):
        """Test embedded records are validated under their own paths."""
        member = Member(
            Info=Contact(Email="fish_yww@163.com", Age=3),
            Org=Organization(Company="E"),
            Name="fish",
            Sex="male",
        )
        session = new(member)
        assert not session.validate()
        assert session.errors.fields() == ["Org.Company"]
        assert session.errors.one() == "Org.Company value must be in the enum [A B C D]"
        assert session.raw("Company") == ("E", True)

        member.Org.Company = "B"
        assert new(member).validate()

    def test_plain_nested_record(self):
        """Test a nested record field that is not embedded."""
        member = PlainMember(Name="fish", In=Contact(Email="fish_yww@163.com", Age=3), Sex="male")
        assert new(member).validate()

    def test_more_than_two_levels(self):
        """Test rules three levels down and filtered write-back."""
        account = Account(
            In2=Membership(
                Org=Organization(Company="E"),
                Sub=Contact(Email="SOME@163.com ", Age=3),
            )
        )
        session = new(account)
        assert not session.validate()
        assert session.errors.random() == "In2.Org.Company value must be in the enum [A B C D]"

        account.In2.Org.Company = "A"
        session = new(account)
        assert session.validate()
        assert account.In2.Sub.Email == "some@163.com"
        assert session.raw("In2.Company") == ("A", True)

    def test_missing_required_record(self):
        """Test a None record fails required and hides its children."""
        session = new(Account())
        assert not session.validate()
        assert session.errors.fields() == ["In2"]

    def test_required_optional_bool(self):
        """Test None fails required on an optional bool while False passes."""
        session = new(UserDto(Name="abc", Sex=None))
        assert not session.validate()
        assert session.errors.fields() == ["Sex"]
        assert new(UserDto(Name="abc", Sex=False)).validate()


class TestEmptyValues:
    """Tests for skip-empty behaviour on zero values."""

    def test_zero_skips_comparison(self):
        """Test gt is skipped for zero, enforced without skipping, and required wins."""
        data = {"a": 0}
        session = from_mapping(data)
        session.add_rule("a", "gt", 100)
        assert session.validate()

        session = from_mapping(data)
        session.add_rule("a", "gt", 100).set_skip_empty(False)
        assert not session.validate()
        assert session.errors.one() == "a value should greater the 100"

        session = from_mapping(data)
        session.add_rule("a", "required")
        session.add_rule("a", "gt", 100)
        assert not session.validate()
        assert session.errors.one() == "a is required and not empty"

    def test_small_floats_greater_than_zero(self):
        """Test small positive floats pass gt:0."""
        session = from_mapping({"a": 0.01, "b": 0.03})
        session.add_rule("a", "gt", 0)
        session.add_rule("b", "gt", 0)
        assert session.validate()

    def test_float_filter(self):
        """Test the float filter keeps a float value."""
        session = from_mapping({"t": 1.1})
        session.filter_rule("t", "float")
        assert session.validate()
        assert session.safe_val("t") == 1.1

from unittest import mock

import pytest

from otp.codes import generate_code, is_well_formed
from otp.errors import InvalidRequest
from otp.flows import Channel, FlowType
from otp.targets import Target, mask, resolve_target


def test_email_wins_over_phone():
    target = resolve_target(email="a@b.com", phone="555")
    assert target == Target("a@b.com", Channel.EMAIL)


def test_phone_used_when_email_missing_or_blank():
    assert resolve_target(phone="555").channel is Channel.PHONE
    assert resolve_target(email="   ", phone="+1 (555) 010-2000") == Target("+15550102000", Channel.PHONE)


def test_email_is_case_folded_and_trimmed():
    assert resolve_target(email="  New@X.COM ").value == "new@x.com"


def test_double_zero_prefix_becomes_plus():
    assert resolve_target(phone="0044 20 7946 0000").value == "+442079460000"


@pytest.mark.parametrize("kwargs", [{}, {"email": ""}, {"email": None, "phone": ""}])
def test_missing_target_is_invalid_request(kwargs):
    with pytest.raises(InvalidRequest):
        resolve_target(**kwargs)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"email": "not-an-email"},
        {"email": "a@b@c.com"},
        {"email": "a@b"},
        {"email": "a b@x.com"},
        {"phone": "12ab"},
        {"email": 42},
    ],
)
def test_malformed_target_is_invalid_request(kwargs):
    with pytest.raises(InvalidRequest):
        resolve_target(**kwargs)


def test_mask_hides_most_of_the_target():
    assert mask(Target("alice@x.com", Channel.EMAIL)) == "a***@x.com"
    assert mask(Target("+15550102000", Channel.PHONE)) == "**********00"


def test_generated_codes_are_six_ascii_digits():
    for _ in range(200):
        code = generate_code()
        assert is_well_formed(code)


def test_leading_zeros_are_kept():
    with mock.patch("otp.codes.secrets.randbelow", return_value=42):
        assert generate_code(6) == "000042"


def test_code_length_follows_argument():
    assert len(generate_code(8)) == 8
    with pytest.raises(ValueError):
        generate_code(0)


def test_well_formed_rejects_other_shapes():
    assert not is_well_formed("12345")
    assert not is_well_formed("12345a")
    assert not is_well_formed(123456)
    assert not is_well_formed("١٢٣٤٥٦")  # non-ASCII digits


def test_flow_type_parsing():
    assert FlowType.parse("SIGNUP") is FlowType.SIGNUP
    assert FlowType.parse(None, default=FlowType.LOGIN) is FlowType.LOGIN
    with pytest.raises(InvalidRequest):
        FlowType.parse("reset")
    with pytest.raises(InvalidRequest):
        FlowType.parse(None)

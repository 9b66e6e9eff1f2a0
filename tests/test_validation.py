import pytest

from services.errors import InvalidAddress, ValidationFailed
from services.validation import (
    ensure_addresses_valid,
    first_invalid_address,
    is_email_valid,
    partition_emails,
)


@pytest.mark.parametrize(
    "address",
    ["a@b.com", "first.last+tag@sub.example.co.uk", "x@y.z", "weird!#$%@domain.io"],
)
def test_valid_addresses(address):
    assert is_email_valid(address)


@pytest.mark.parametrize(
    "address",
    ["not-an-email", "a@b", "@b.com", "a@.", "a b@c.com", "a@b .com", "a@@b.com", "", "a@b.com ", None, 42],
)
def test_invalid_addresses(address):
    assert not is_email_valid(address)


def test_partition_puts_every_element_in_exactly_one_list():
    addresses = ["a@b.com", "nope", "c@d.org", "a@b.com", "e@f", 7]

    valid, invalid = partition_emails(addresses)

    assert valid == ["a@b.com", "c@d.org", "a@b.com"]
    assert invalid == ["nope", "e@f", 7]
    assert len(valid) + len(invalid) == len(addresses)


def test_partition_rejects_non_lists():
    with pytest.raises(ValidationFailed, match="Emails array is required"):
        partition_emails("a@b.com")

    with pytest.raises(ValidationFailed, match="Emails array is required"):
        partition_emails(None)


def test_partition_rejects_empty_list():
    with pytest.raises(ValidationFailed, match="addresses required"):
        partition_emails([])


def test_first_invalid_address_stops_at_first():
    assert first_invalid_address(["a@b.com", "bad-one", "bad-two"]) == "bad-one"
    assert first_invalid_address(["a@b.com"]) is None


def test_ensure_addresses_valid_names_offender():
    with pytest.raises(InvalidAddress) as exc_info:
        ensure_addresses_valid(["ok@example.com", "broken@", "also broken"])

    assert exc_info.value.address == "broken@"
    assert exc_info.value.to_content() == {"error": "Invalid email address: broken@"}


@pytest.mark.parametrize("address", ["a@b.com\n", "a@b.com\r\n", "\na@b.com"])
def test_line_breaks_around_an_address_are_invalid(address):
    assert not is_email_valid(address)
    assert partition_emails([address]) == ([], [address])

"""
Test suite for the member registry
Covers every stored member shape and the write-boundary checks
"""

import pytest

from tripsync.core.errors import BadRequestError
from tripsync.views.members import (
    build_lookup,
    find_member,
    is_member,
    member_display_name,
    normalize_members,
    validate_members_for_write,
)


def test_build_lookup_accepts_every_known_shape():
    members = [
        {"id": "u1", "name": "Alice", "role": "Organizer", "status": "Confirmed"},
        {"user": {"_id": "u2", "name": "Bob", "avatar": "bob.png"}, "role": "Member"},
        {"user": {"id": "u3", "displayName": "Cara"}},
        {"user": "u4", "name": "Dan"},
        {"userId": "u5", "name": "Eve"},
    ]

    lookup = build_lookup(members)

    assert list(lookup) == ["u1", "u2", "u3", "u4", "u5"]
    assert lookup["u1"]["role"] == "Organizer"
    assert lookup["u2"] == {"id": "u2", "name": "Bob", "avatar": "bob.png", "role": "Member", "status": None}
    assert lookup["u3"]["name"] == "Cara"
    assert lookup["u4"]["name"] == "Dan"
    assert lookup["u5"]["name"] == "Eve"


def test_missing_name_degrades_to_unknown():
    assert build_lookup([{"id": "u1"}])["u1"]["name"] == "Unknown"


def test_member_without_id_is_keyed_by_name():
    lookup = build_lookup([{"name": "Ghost"}])
    assert lookup["Ghost"]["name"] == "Ghost"


def test_build_lookup_never_raises_on_garbage():
    assert build_lookup(None) == {}
    assert build_lookup("not a list") == {}
    lookup = build_lookup([None, 42, {}, [], "u9"])
    assert "u9" in lookup
    assert "42" in lookup


def test_normalize_members_is_idempotent():
    members = [{"user": {"_id": "u2", "name": "Bob"}, "role": "Member", "status": "Confirmed"}]
    once = normalize_members(members)
    assert normalize_members(once) == once


def test_membership_checks_all_shapes():
    members = [{"user": {"_id": "u2"}}, {"userId": "u5"}, {"id": "u1"}]
    assert is_member(members, "u2")
    assert is_member(members, "u5")
    assert is_member(members, "u1")
    assert not is_member(members, "u3")
    assert not is_member(None, "u1")
    assert find_member(members, "u5")["id"] == "u5"
    assert find_member(members, "nobody") is None


def test_validate_members_returns_flat_shape():
    cleaned = validate_members_for_write(
        [
            {"id": "u1", "name": "Alice", "role": "Organizer"},
            {"user": {"_id": "u2", "name": "Bob", "avatar": "b.png"}, "role": "Member", "status": "Invited"},
        ]
    )
    assert cleaned == [
        {"id": "u1", "name": "Alice", "role": "Organizer", "status": "Confirmed"},
        {"id": "u2", "name": "Bob", "role": "Member", "status": "Invited", "avatar": "b.png"},
    ]


@pytest.mark.parametrize(
    "members, fragment",
    [
        ([{"name": "No Id", "role": "Organizer"}], "stable member id"),
        ([{"id": "u1", "role": "Organizer"}, {"id": "u1", "role": "Member"}], "duplicate member id"),
        ([{"id": "u1", "role": "Captain"}], "role"),
        ([{"id": "u1", "role": "Organizer", "status": "Maybe"}], "status"),
        ([{"id": "u1", "role": "Member"}], "exactly one Organizer"),
        ("u1", "expected a list"),
    ],
)
def test_validate_members_rejects_bad_lists(members, fragment):
    with pytest.raises(BadRequestError) as excinfo:
        validate_members_for_write(members)
    assert fragment in excinfo.value.message


def test_member_display_name_fallbacks():
    assert member_display_name({"displayName": "Jo"}, "jo@example.com") == "Jo"
    assert member_display_name({"firstName": "Jo", "lastName": "March"}, "jo@example.com") == "Jo March"
    assert member_display_name({}, "friend@example.com") == "friend"
    assert member_display_name(None, None) == "Unknown"

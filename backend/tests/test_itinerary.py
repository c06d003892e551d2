"""
Test suite for the itinerary normalizer
Embedded days vs. the activities collection, tolerant field mapping and day completeness
"""

import pytest

from tripsync.views.itinerary import coerce_day, complete_days, normalize, trip_day_count


def test_empty_trip_yields_single_empty_day():
    assert normalize({}, []) == {"days": [{"day": 1, "activities": [], "hotels": []}]}
    assert normalize(None, None)["days"][0]["day"] == 1


def test_activities_grouped_by_day_in_insertion_order():
    activities = [
        {"_id": "a1", "day": 2, "title": "Seine Cruise"},
        {"_id": "a2", "day": 1, "title": "Louvre Visit", "time": "10:00"},
        {"_id": "a3", "day": "2", "activity": "Montmartre"},
    ]

    days = normalize({}, activities)["days"]

    assert [d["day"] for d in days] == [1, 2]
    assert [a["title"] for a in days[0]["activities"]] == ["Louvre Visit"]
    assert [a["title"] for a in days[1]["activities"]] == ["Seine Cruise", "Montmartre"]
    assert days[0]["activities"][0]["time"] == "10:00"
    assert days[0]["activities"][0]["id"] == "a2"
    assert [d["hotels"] for d in days] == [[], []]


@pytest.mark.parametrize("raw", [None, "", "abc", 0, -3, True, float("nan")])
def test_invalid_day_defaults_to_one(raw):
    assert coerce_day(raw) == 1


def test_embedded_itinerary_wins_over_activities():
    trip = {
        "itinerary": {
            "days": [
                {"day": 1, "activities": [{"name": "Eiffel Tower", "type": "Sightseeing"}], "hotels": []},
            ]
        }
    }

    days = normalize(trip, [{"day": 1, "title": "Ignored"}])["days"]

    assert len(days) == 1
    activity = days[0]["activities"][0]
    assert activity["title"] == "Eiffel Tower"
    assert activity["category"] == "Sightseeing"
    assert activity["reactions"] == []


def test_hotel_fields_are_mapped_from_legacy_keys():
    trip = {
        "itinerary": {
            "days": [
                {
                    "day": 1,
                    "hotels": [
                        {
                            "HotelName": "Hotel Lutetia",
                            "HotelRating": "5",
                            "Address": "45 Bd Raspail",
                            "CleanedAttractions": "Le Bon Marche",
                            "HotelWebsiteUrl": "https://example.com",
                            "reactions": [{"user": {"_id": "u1", "name": "Alice"}, "type": "like"}],
                        }
                    ],
                }
            ]
        }
    }

    hotel = normalize(trip)["days"][0]["hotels"][0]

    assert hotel["name"] == "Hotel Lutetia"
    assert hotel["rating"] == "5"
    assert hotel["address"] == "45 Bd Raspail"
    assert hotel["attractions"] == "Le Bon Marche"
    assert hotel["website"] == "https://example.com"
    assert hotel["image"] == ""
    assert hotel["reactions"] == [{"userId": "u1", "userName": "Alice", "type": "like"}]


def test_normalize_is_idempotent():
    activities = [
        {"_id": "a1", "day": 1, "title": "Louvre Visit", "reactions": [{"userId": "u1", "type": "like"}]},
        {"_id": "a2", "day": 3, "title": "Versailles"},
    ]
    once = normalize({}, activities)
    twice = normalize({"itinerary": once})
    assert twice == once


@pytest.mark.parametrize(
    "start, end, expected",
    [
        ("2026-01-10", "2026-01-12", 3),
        ("2026-01-10", "2026-01-10", 1),
        ("2026-01-31", "2026-02-02", 3),
        ("2026-01-12", "2026-01-10", 1),
        (None, "2026-01-10", 1),
        ("garbage", "2026-01-10", 1),
    ],
)
def test_trip_day_count(start, end, expected):
    assert trip_day_count(start, end) == expected


def test_complete_days_pads_gaps_and_stamps_dates():
    itinerary = normalize({}, [{"day": 2, "title": "Seine Cruise"}])

    days = complete_days(itinerary, "2026-01-10", "2026-01-12")["days"]

    assert [d["day"] for d in days] == [1, 2, 3]
    assert [d["date"] for d in days] == ["2026-01-10", "2026-01-11", "2026-01-12"]
    assert days[0]["activities"] == []
    assert days[1]["activities"][0]["title"] == "Seine Cruise"


def test_complete_days_keeps_days_beyond_the_range():
    itinerary = normalize({}, [{"day": 5, "title": "Late addition"}])
    days = complete_days(itinerary, "2026-01-10", "2026-01-11")["days"]
    assert [d["day"] for d in days] == [1, 2, 5]

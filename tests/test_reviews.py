"""
Tests for dish reviews and the per-item rating aggregate.
"""

import pytest
from bson import ObjectId
from pymongo.errors import DuplicateKeyError

from database import REVIEWS
from errors import DuplicateResourceError
from reviews import average_rating, create_review
from schemas import ReviewIn


def _review(client, headers, menu_item_id, rating=5, comment="Tastes like home"):
    return client.post(
        "/reviews",
        json={"menu_item": menu_item_id, "rating": rating, "comment": comment},
        headers=headers,
    )


class TestCreateReview:

    def test_create_review(self, client, user_headers, seed_user, seed_menu_item):
        response = _review(client, user_headers, seed_menu_item["_id"])
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["rating"] == 5
        assert data["user_id"] == seed_user["_id"]
        assert data["user"]["name"] == "Aigerim"
        assert data["menu_item_details"]["name"] == "Beshbarmak"

    def test_second_review_for_same_item_rejected(self, client, mongo_db, user_headers, seed_menu_item):
        assert _review(client, user_headers, seed_menu_item["_id"]).status_code == 201

        response = _review(client, user_headers, seed_menu_item["_id"], rating=1, comment="Changed my mind")
        assert response.status_code == 400
        assert response.json()["error"] == "You have already reviewed this menu item"
        assert mongo_db[REVIEWS].count_documents({}) == 1

    def test_other_user_may_review_same_item(self, client, user_headers, other_user_headers, seed_menu_item):
        assert _review(client, user_headers, seed_menu_item["_id"]).status_code == 201
        assert _review(client, other_user_headers, seed_menu_item["_id"]).status_code == 201

    def test_pair_uniqueness_is_enforced_by_the_index(self, mongo_db, seed_user, seed_menu_item):
        doc = {"user_id": seed_user["_id"], "menu_item": seed_menu_item["_id"], "rating": 4, "comment": "Great"}
        mongo_db[REVIEWS].insert_one(dict(doc))
        with pytest.raises(DuplicateKeyError):
            mongo_db[REVIEWS].insert_one(dict(doc))

    def test_service_maps_index_violation(self, mongo_db, seed_user, seed_menu_item):
        payload = ReviewIn(menu_item=seed_menu_item["_id"], rating=4, comment="Really good")
        create_review(mongo_db, payload, seed_user)
        with pytest.raises(DuplicateResourceError):
            create_review(mongo_db, payload, seed_user)

    def test_unknown_menu_item(self, client, user_headers):
        response = _review(client, user_headers, str(ObjectId()))
        assert response.status_code == 404
        assert response.json()["error"] == "Menu item not found"

    def test_field_validation(self, client, user_headers, seed_menu_item):
        response = _review(client, user_headers, seed_menu_item["_id"], rating=6, comment="Bad")
        assert response.status_code == 400
        assert set(response.json()["details"]) == {
            "Rating cannot exceed 5",
            "Comment must be at least 5 characters",
        }

    def test_comment_too_long(self, client, user_headers, seed_menu_item):
        response = _review(client, user_headers, seed_menu_item["_id"], comment="x" * 501)
        assert response.status_code == 400
        assert response.json()["details"] == ["Comment cannot exceed 500 characters"]

    def test_requires_authentication(self, client, seed_menu_item):
        assert _review(client, {}, seed_menu_item["_id"]).status_code == 401


class TestReadReviews:

    def test_list_and_filter(self, client, user_headers, seed_menu_item, seed_dessert):
        _review(client, user_headers, seed_menu_item["_id"])
        _review(client, user_headers, seed_dessert["_id"])

        assert client.get("/reviews").json()["count"] == 2
        response = client.get("/reviews", params={"menu_item": seed_dessert["_id"]})
        assert [r["menu_item"] for r in response.json()["data"]] == [seed_dessert["_id"]]

    def test_per_item_aggregate(self, client, user_headers, other_user_headers, seed_menu_item):
        _review(client, user_headers, seed_menu_item["_id"], rating=5)
        _review(client, other_user_headers, seed_menu_item["_id"], rating=4)

        response = client.get(f"/reviews/menu-item/{seed_menu_item['_id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert body["average_rating"] == "4.5"

    def test_average_rounds_halves_up(self, client, mongo_db, seed_menu_item):
        for rating in (5, 4, 4, 4):
            mongo_db[REVIEWS].insert_one({"user_id": str(ObjectId()), "menu_item": seed_menu_item["_id"],
                                          "rating": rating, "comment": "Solid plate"})

        body = client.get(f"/reviews/menu-item/{seed_menu_item['_id']}").json()
        assert body["count"] == 4
        assert body["average_rating"] == "4.3"
        assert average_rating([{"rating": r} for r in (1, 1, 1, 2)]) == "1.3"

    def test_uppercase_menu_item_id_matches(self, client, user_headers, seed_menu_item):
        _review(client, user_headers, seed_menu_item["_id"])
        upper = seed_menu_item["_id"].upper()

        body = client.get(f"/reviews/menu-item/{upper}").json()
        assert body["count"] == 1
        assert body["average_rating"] == "5.0"
        assert client.get("/reviews", params={"menu_item": upper}).json()["count"] == 1

    def test_malformed_menu_item_filter(self, client):
        response = client.get("/reviews", params={"menu_item": "nope"})
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid menu item ID"

    def test_per_item_aggregate_without_reviews(self, client, seed_menu_item):
        response = client.get(f"/reviews/menu-item/{seed_menu_item['_id']}")
        assert response.json() == {"count": 0, "average_rating": "0.0", "data": []}

    def test_get_single_review(self, client, user_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        response = client.get(f"/reviews/{review_id}")
        assert response.status_code == 200
        assert response.json()["data"]["comment"] == "Tastes like home"

    def test_dangling_menu_item_reference(self, client, user_headers, admin_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        client.delete(f"/menu-items/{seed_menu_item['_id']}", headers=admin_headers)

        data = client.get(f"/reviews/{review_id}").json()["data"]
        assert data["menu_item"] == seed_menu_item["_id"]
        assert data["menu_item_details"] is None

    def test_malformed_id(self, client):
        response = client.get("/reviews/nope")
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid review ID"


class TestUpdateReview:

    def test_owner_partial_update(self, client, user_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"], rating=3).json()["data"]["_id"]

        response = client.put(f"/reviews/{review_id}", json={"rating": 4}, headers=user_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["rating"] == 4
        assert data["comment"] == "Tastes like home"

    def test_only_rating_and_comment_change(self, client, user_headers, seed_other_user,
                                            seed_menu_item, seed_dessert):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]

        response = client.put(
            f"/reviews/{review_id}",
            json={"comment": "Even better now", "user_id": seed_other_user["_id"], "menu_item": seed_dessert["_id"]},
            headers=user_headers,
        )
        data = response.json()["data"]
        assert data["comment"] == "Even better now"
        assert data["menu_item"] == seed_menu_item["_id"]
        assert data["user_id"] != seed_other_user["_id"]

    def test_non_owner_forbidden(self, client, user_headers, other_user_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]

        response = client.put(f"/reviews/{review_id}", json={"rating": 1}, headers=other_user_headers)
        assert response.status_code == 403
        assert response.json()["error"] == "Access denied. You can only update your own reviews."

    def test_admin_may_update(self, client, user_headers, admin_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        response = client.put(f"/reviews/{review_id}", json={"rating": 2}, headers=admin_headers)
        assert response.status_code == 200
        assert response.json()["data"]["rating"] == 2

    def test_invalid_rating(self, client, user_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        response = client.put(f"/reviews/{review_id}", json={"rating": 0}, headers=user_headers)
        assert response.status_code == 400
        assert response.json()["details"] == ["Rating must be at least 1"]


class TestDeleteReview:

    def test_owner_deletes(self, client, mongo_db, user_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        assert client.delete(f"/reviews/{review_id}", headers=user_headers).status_code == 200
        assert mongo_db[REVIEWS].count_documents({}) == 0

    def test_non_owner_forbidden(self, client, mongo_db, user_headers, other_user_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        response = client.delete(f"/reviews/{review_id}", headers=other_user_headers)
        assert response.status_code == 403
        assert mongo_db[REVIEWS].count_documents({}) == 1

    def test_admin_deletes(self, client, user_headers, admin_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        assert client.delete(f"/reviews/{review_id}", headers=admin_headers).status_code == 200

    def test_not_found(self, client, user_headers):
        assert client.delete(f"/reviews/{ObjectId()}", headers=user_headers).status_code == 404

    def test_review_can_be_written_again_after_delete(self, client, user_headers, seed_menu_item):
        review_id = _review(client, user_headers, seed_menu_item["_id"]).json()["data"]["_id"]
        client.delete(f"/reviews/{review_id}", headers=user_headers)
        assert _review(client, user_headers, seed_menu_item["_id"]).status_code == 201

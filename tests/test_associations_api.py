"""Association directory endpoints."""

from decimal import Decimal

from donvie_api.db.models import Association, User
from tests.helpers import association_payload, donation_payload, register


class TestPublicDirectory:
    def test_list_returns_seed_in_name_order(self, client, seeded):
        response = client.get("/api/associations")

        assert response.status_code == 200
        names = [a["name"] for a in response.json()]
        assert len(names) == 6
        assert names == sorted(names)

    def test_list_uses_camel_case_and_decimal_strings(self, client, seeded):
        body = client.get("/api/associations").json()[0]

        assert {"fullMission", "donorCount", "totalRaised", "createdAt", "siret"} <= set(body)
        assert body["totalRaised"] == "0.00"
        assert body["donorCount"] == 0
        assert body["verified"] is True

    def test_get_by_id(self, client, association):
        response = client.get(f"/api/associations/{association.id}")

        assert response.status_code == 200
        assert response.json()["name"] == "Foo"
        assert response.json()["verified"] is False

    def test_get_unknown_is_404(self, client):
        assert client.get("/api/associations/12345").status_code == 404

    def test_non_numeric_id_is_400(self, client):
        response = client.get("/api/associations/abc")

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "association_id"

    def test_search_is_case_insensitive_on_name_and_mission(self, client, seeded):
        by_name = client.get("/api/associations/search/MÉDECINS").json()
        by_mission = client.get("/api/associations/search/alimentaire").json()

        assert [a["name"] for a in by_name] == ["Médecins Sans Frontières"]
        assert [a["name"] for a in by_mission] == ["Les Restos du Cœur"]

    def test_search_does_not_match_acronyms(self, client, seeded):
        # "msf" only appears in the website, which is not searched
        assert client.get("/api/associations/search/msf").json() == []

    def test_category_filter(self, client, seeded):
        social = client.get("/api/associations/category/social").json()

        assert len(social) == 3
        assert {a["category"] for a in social} == {"social"}

    def test_category_all_returns_everything(self, client, seeded):
        assert len(client.get("/api/associations/category/all").json()) == 6

    def test_unknown_category_is_empty(self, client, seeded):
        assert client.get("/api/associations/category/space").json() == []


class TestRegisterAssociation:
    def test_requires_authentication(self, client):
        response = client.post("/api/associations", json=association_payload())

        assert response.status_code == 401

    def test_creates_unverified_association_owned_by_caller(self, donor_client, db_session):
        response = donor_client.post("/api/associations", json=association_payload())

        assert response.status_code == 201
        body = response.json()
        assert body["verified"] is False
        assert body["donorCount"] == 0
        assert body["totalRaised"] == "0.00"

        owner = db_session.query(User).filter(User.email == "donor@example.fr").one()
        assert owner.association_id == body["id"]
        assert owner.user_type == "association"

        mine = donor_client.get("/api/user/association")
        assert mine.status_code == 200
        assert mine.json()["id"] == body["id"]

    def test_privileged_fields_are_rejected(self, donor_client, db_session):
        response = donor_client.post(
            "/api/associations",
            json=association_payload(verified=True, donorCount=999, totalRaised="1000000"),
        )

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert {"verified", "donorCount", "totalRaised"} <= fields
        assert db_session.query(Association).count() == 0

    def test_invalid_siret_and_category(self, donor_client):
        response = donor_client.post(
            "/api/associations",
            json=association_payload(siret="1234", category="space"),
        )

        assert response.status_code == 400
        fields = {e["field"] for e in response.json()["errors"]}
        assert {"siret", "category"} <= fields

    def test_siret_whitespace_is_normalized(self, donor_client):
        response = donor_client.post(
            "/api/associations",
            json=association_payload(siret="123 456 789 01234"),
        )

        assert response.status_code == 201
        assert response.json()["siret"] == "12345678901234"


class TestUpdateAssociation:
    def test_owner_can_update_presentation_fields(self, owner_client, db_session):
        association_id = owner_client.get("/api/user/association").json()["id"]

        response = owner_client.patch(
            f"/api/associations/{association_id}",
            json={"mission": "Nouvelle mission", "website": ""},
        )

        assert response.status_code == 200
        assert response.json()["mission"] == "Nouvelle mission"
        assert response.json()["website"] is None
        assert response.json()["name"] == "Foo"

    def test_counters_cannot_be_patched(self, owner_client):
        association_id = owner_client.get("/api/user/association").json()["id"]

        response = owner_client.patch(
            f"/api/associations/{association_id}",
            json={"totalRaised": "999.00", "verified": True},
        )

        assert response.status_code == 400

    def test_non_owner_is_forbidden(self, donor_client, association):
        response = donor_client.patch(
            f"/api/associations/{association.id}",
            json={"mission": "Hijacked"},
        )

        assert response.status_code == 403

    def test_unknown_association_is_404(self, donor_client):
        response = donor_client.patch("/api/associations/999", json={"mission": "x"})

        assert response.status_code == 404


class TestAssociationStats:
    def test_requires_association_account(self, donor_client):
        assert donor_client.get("/api/associations/stats").status_code == 403

    def test_anonymous_is_401(self, client):
        assert client.get("/api/associations/stats").status_code == 401

    def test_stats_for_own_association(self, owner_client):
        association_id = owner_client.get("/api/user/association").json()["id"]
        for email, amount in [
            ("a@example.fr", "10.00"),
            ("A@Example.fr", "20.00"),
            ("b@example.fr", "15.50"),
        ]:
            response = owner_client.post(
                "/api/donations",
                json=donation_payload(association_id, donorEmail=email, amount=amount),
            )
            assert response.status_code == 201

        stats = owner_client.get("/api/associations/stats").json()

        assert stats["totalRaised"] == "45.50"
        assert stats["donorCount"] == 2
        assert stats["donationCount"] == 3
        assert Decimal(stats["avgDonation"]) == Decimal("15.17")
        assert stats["thisMonthAmount"] == "45.50"
        assert stats["thisMonthCount"] == 3

        association = owner_client.get(f"/api/associations/{association_id}").json()
        assert association["totalRaised"] == stats["totalRaised"]
        assert association["donorCount"] == stats["donorCount"]


def test_register_then_lookup_with_second_account_is_isolated(client):
    register(client, email="owner1@foo.org", user_type="association", association=association_payload())
    first = client.get("/api/user/association").json()["id"]
    client.post("/api/logout")

    register(client, email="plain@example.fr")

    assert client.get("/api/user/association").status_code == 404
    assert client.get(f"/api/associations/{first}").status_code == 200

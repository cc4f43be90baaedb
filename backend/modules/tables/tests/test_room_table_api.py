# backend/modules/tables/tests/test_room_table_api.py

"""
API tests for room and table management.
"""

import uuid


class TestRoomRoutes:
    def test_create_and_list_rooms(self, client):
        response = client.post(
            "/api/room-table/rooms",
            json={"name": "Terrace", "tableCount": 5, "totalCapacity": 20},
        )

        assert response.status_code == 201
        room = response.json()["room"]
        assert room["name"] == "Terrace"
        assert room["tableCount"] == 5

        listed = client.get("/api/room-table/rooms").json()
        assert [r["name"] for r in listed["rooms"]] == ["Terrace"]

    def test_duplicate_room_name(self, client, restaurant):
        response = client.post(
            "/api/room-table/rooms",
            json={"name": "Main Hall", "tableCount": 5, "totalCapacity": 20},
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_ROOM"

    def test_invalid_room(self, client):
        response = client.post(
            "/api/room-table/rooms",
            json={"name": "Patio", "tableCount": 0, "totalCapacity": 20},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "room table count must be positive"

    def test_update_room(self, client, restaurant):
        room_id = restaurant["room"].id

        response = client.put(
            f"/api/room-table/rooms/{room_id}",
            json={"name": "Main Hall", "description": "Ground floor", "tableCount": 12, "totalCapacity": 48},
        )

        assert response.status_code == 200
        assert response.json()["room"]["description"] == "Ground floor"

    def test_unknown_room(self, client):
        response = client.get(f"/api/room-table/rooms/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_delete_room_with_tables_is_rejected(self, client, restaurant):
        response = client.delete(f"/api/room-table/rooms/{restaurant['room'].id}")

        assert response.status_code == 409
        assert response.json()["error_code"] == "ROOM_NOT_EMPTY"

    def test_room_capacity(self, client, restaurant):
        response = client.get(f"/api/room-table/rooms/{restaurant['room'].id}/capacity")

        data = response.json()
        assert data["declaredTableCount"] == 10
        assert data["currentTableCount"] == 2
        assert data["currentTotalCapacity"] == 10

    def test_room_tables(self, client, restaurant):
        response = client.get(f"/api/room-table/rooms/{restaurant['room'].id}/tables")

        numbers = sorted(t["tableNumber"] for t in response.json()["tables"])
        assert numbers == ["T01", "T02"]


class TestTableRoutes:
    def test_create_table_starts_available(self, client, restaurant):
        response = client.post(
            "/api/room-table/tables",
            json={
                "tableNumber": "T03",
                "capacity": 2,
                "roomId": str(restaurant["room"].id),
            },
        )

        assert response.status_code == 201
        table = response.json()["table"]
        assert table["status"] == "Available"
        assert table["tableName"] == "Table T03"

    def test_create_table_in_unknown_room(self, client):
        response = client.post(
            "/api/room-table/tables",
            json={"tableNumber": "X1", "capacity": 2, "roomId": str(uuid.uuid4())},
        )

        assert response.status_code == 404

    def test_update_table(self, client, restaurant):
        table = restaurant["table1"]

        response = client.put(
            f"/api/room-table/tables/{table.id}",
            json={
                "tableNumber": "T01",
                "tableName": "Window",
                "capacity": 2,
                "roomId": str(restaurant["room"].id),
            },
        )

        assert response.status_code == 200
        assert response.json()["table"]["tableName"] == "Window"
        assert response.json()["table"]["capacity"] == 2

    def test_status_override(self, client, restaurant):
        table = restaurant["table2"]

        response = client.put(
            f"/api/room-table/tables/{table.id}/status",
            json={"status": "Maintenance", "reason": "Broken leg"},
        )

        assert response.status_code == 200
        assert response.json()["table"]["status"] == "Maintenance"

    def test_invalid_status(self, client, restaurant):
        response = client.put(
            f"/api/room-table/tables/{restaurant['table2'].id}/status",
            json={"status": "Dirty"},
        )

        assert response.status_code == 400

    def test_status_of_unknown_table(self, client):
        response = client.put(
            f"/api/room-table/tables/{uuid.uuid4()}/status",
            json={"status": "Available"},
        )

        assert response.status_code == 404

    def test_delete_table(self, client, restaurant):
        table_id = restaurant["table2"].id

        response = client.delete(f"/api/room-table/tables/{table_id}")

        assert response.status_code == 200
        assert client.get(f"/api/room-table/tables/{table_id}").status_code == 404

    def test_stats(self, client, restaurant):
        client.put(
            f"/api/room-table/tables/{restaurant['table1'].id}/status",
            json={"status": "Occupied"},
        )

        data = client.get("/api/room-table/stats").json()

        assert data["totalRooms"] == 1
        assert data["totalTables"] == 2
        assert data["availableTables"] == 1
        assert data["occupiedTables"] == 1

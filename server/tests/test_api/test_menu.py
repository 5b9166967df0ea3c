# 菜单API测试


class TestMenuRoutes:
    """客户端菜单测试"""

    def test_empty_menu(self, client):
        data = client.get("/api/menu").json()
        assert data["success"] is True
        assert data["data"] == {"categories": {}, "count": 0}

    def test_menu_by_category(self, client, deployed_menu):
        data = client.get("/api/menu").json()["data"]
        assert data["count"] == 10

        mains = {item["name"]: item for item in data["categories"]["Main Course"]}
        dal = mains["Dal Tadka"]
        assert dal["tray_prices"] == {"SmallTray": 30.0, "MediumTray": 50.0, "LargeTray": 80.0, "ExtraLargeTray": 125.0}
        assert dal["spice_levels"] == ["Mild", "Medium", "Spicy"]
        assert "cost" not in dal
        assert mains["Chicken Tikka Masala"]["non_veg"] is True

        samosa = next(i for i in data["categories"]["Appetizer"] if i["name"] == "Veg Samosa")
        assert samosa["unit_type"] == "per-piece"
        assert samosa["spice_levels"] == []

    def test_course_menus(self, client, deployed_menu):
        data = client.get("/api/menu/courses").json()["data"]
        assert [i["name"] for i in data["main"]] == [
            "Dal Tadka", "Paneer Butter Masala", "Chicken Tikka Masala", "Lamb Rogan Josh"
        ]
        assert [i["name"] for i in data["rice"]] == ["Jeera Rice", "Chicken Biryani"]
        assert set(data) == {"appetizer", "main", "rice", "bread", "dessert"}

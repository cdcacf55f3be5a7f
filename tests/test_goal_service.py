# ==============================================================================
# Tests for Goal Management
# ==============================================================================
"""
Tests for GoalService: owner-scoped create, update and soft delete.
"""

import pytest

from webanalytics.core.errors import NotFoundError, ValidationError


class TestCreate:
    """Tests for GoalService.create()."""

    def test_creates_active_goal(self, pipeline, stores):
        goal = pipeline.goals.create(
            owner_id=1,
            website_id="web_test",
            name="Brochure",
            goal_type="download",
            conditions={"fileType": "pdf"},
            value=2.5,
        )

        assert goal.id is not None
        assert goal.is_active is True
        assert stores.goals.get(goal.id) == goal

    def test_rejects_invalid_conditions(self, pipeline):
        with pytest.raises(ValidationError):
            pipeline.goals.create(1, "web_test", "Bad", "page_duration", {"duration": -1})

    def test_rejects_invalid_fields(self, pipeline):
        with pytest.raises(ValidationError) as exc:
            pipeline.goals.create(1, "web_test", "", "download", {}, value=-5)
        assert len(exc.value.errors) == 2

    def test_website_of_another_owner(self, pipeline):
        with pytest.raises(NotFoundError):
            pipeline.goals.create(2, "web_test", "Mine", "download", {})


class TestUpdateDelete:
    """Tests for GoalService.update() and delete()."""

    @pytest.fixture()
    def goal(self, pipeline):
        return pipeline.goals.create(
            1, "web_test", "Thanks", "url_destination", {"url": "/thanks", "match_type": "exact"}
        )

    def test_update_fields(self, pipeline, goal):
        updated = pipeline.goals.update(goal.id, 1, name="Thank you", value=7)

        assert updated.name == "Thank you"
        assert updated.value == 7.0
        assert pipeline.goals.get(goal.id, 1).name == "Thank you"

    def test_update_revalidates_conditions(self, pipeline, goal):
        with pytest.raises(ValidationError):
            pipeline.goals.update(goal.id, 1, conditions={"url": "/x"})

    def test_update_unknown_field(self, pipeline, goal):
        with pytest.raises(ValidationError):
            pipeline.goals.update(goal.id, 1, website_id="web_other")

    def test_deactivate_removes_from_matching(self, pipeline, stores, goal):
        pipeline.goals.update(goal.id, 1, is_active=False)
        assert stores.goals.find_active("web_test") == []

    def test_delete_is_soft(self, pipeline, stores, goal):
        pipeline.goals.delete(goal.id, 1)

        with pytest.raises(NotFoundError):
            pipeline.goals.get(goal.id, 1)
        assert pipeline.goals.list_for_website("web_test", 1) == []
        assert stores.goals.websites_with_active_goals() == []

    def test_other_owner_cannot_see_goal(self, pipeline, goal):
        with pytest.raises(NotFoundError):
            pipeline.goals.get(goal.id, 2)
        with pytest.raises(NotFoundError):
            pipeline.goals.delete(goal.id, 2)


class TestTrackConversion:
    """Tests for GoalService.track_conversion()."""

    URL = "https://x.com/thanks"

    @pytest.fixture()
    def goal(self, pipeline):
        return pipeline.goals.create(
            1, "web_test", "Thanks", "url_destination", {"url": "/thanks"}, value=25
        )

    def test_falls_back_to_goal_value(self, pipeline, stores, goal):
        conversion = pipeline.goals.track_conversion(goal.id, 1, "sess_1", self.URL)

        assert conversion.id is not None
        assert conversion.value == 25.0
        assert conversion.website_id == "web_test"
        assert conversion.page_url == self.URL
        assert conversion.event_id.startswith("manual_")
        assert stores.conversions.count() == 1

    def test_explicit_value_wins(self, pipeline, goal):
        conversion = pipeline.goals.track_conversion(
            goal.id, 1, "sess_1", self.URL, value=49.5, custom_data={"conversion_value": 10}
        )
        assert conversion.value == 49.5

    def test_explicit_zero_kept(self, pipeline, goal):
        conversion = pipeline.goals.track_conversion(goal.id, 1, "sess_1", self.URL, value=0)
        assert conversion.value == 0.0

    def test_custom_data_value(self, pipeline, goal):
        conversion = pipeline.goals.track_conversion(
            goal.id, 1, "sess_1", self.URL, custom_data={"conversion_value": 12, "plan": "pro"}
        )

        assert conversion.value == 12.0
        assert conversion.custom_data == {"conversion_value": 12, "plan": "pro"}

    def test_each_call_is_a_new_conversion(self, pipeline, stores, goal):
        first = pipeline.goals.track_conversion(goal.id, 1, "sess_1", self.URL)
        second = pipeline.goals.track_conversion(goal.id, 1, "sess_1", self.URL)

        assert first.event_id != second.event_id
        assert stores.conversions.count() == 2

    @pytest.mark.parametrize(
        "fields, message",
        [
            ({"value": -1}, "conversion_value"),
            ({"value": True}, "conversion_value"),
            ({"custom_data": ["a"]}, "custom_data"),
            ({"page_url": "/thanks"}, "page_url"),
            ({"page_url": "ftp://x.com/a"}, "page_url"),
            ({"session_id": "  "}, "session_id"),
        ],
    )
    def test_rejects_invalid_input(self, pipeline, stores, goal, fields, message):
        args = {"session_id": "sess_1", "page_url": self.URL, **fields}

        with pytest.raises(ValidationError) as exc:
            pipeline.goals.track_conversion(goal.id, 1, **args)

        assert exc.value.errors[0].startswith(message)
        assert stores.conversions.count() == 0

    def test_goal_of_another_owner(self, pipeline, stores, goal):
        with pytest.raises(NotFoundError):
            pipeline.goals.track_conversion(goal.id, 2, "sess_1", self.URL)
        assert stores.conversions.count() == 0

    def test_deleted_goal(self, pipeline, goal):
        pipeline.goals.delete(goal.id, 1)

        with pytest.raises(NotFoundError):
            pipeline.goals.track_conversion(goal.id, 1, "sess_1", self.URL)

"""Tests for the SQLite memory store."""

from services.memory import MemoryStore


def _match_input(opportunity_id="opp-1"):
    return {
        "opportunity": {"id": opportunity_id, "naics_code": "541511"},
        "suppliers": [{"id": "s1"}, {"id": "s2"}],
        "limit": 10
    }


class TestMatches:
    def test_save_and_get(self, memory):
        matches = [
            {"supplier_id": "s1", "match_score": 89},
            {"supplier_id": "s2", "match_score": 61}
        ]
        match_id = memory.save_match(_match_input(), matches)

        record = memory.get_match(match_id)
        assert record.opportunity_id == "opp-1"
        assert record.supplier_count == 2
        assert record.top_supplier_id == "s1"
        assert record.top_score == 89
        assert record.result_data == matches

    def test_find_previous_match_by_input(self, memory):
        memory.save_match(_match_input(), [{"supplier_id": "s1", "match_score": 89}])
        found = memory.find_previous_match(_match_input())
        assert found["result"][0]["supplier_id"] == "s1"
        assert memory.find_previous_match(_match_input("opp-2")) is None

    def test_empty_result(self, memory):
        match_id = memory.save_match(_match_input(), [])
        assert memory.get_match(match_id).top_supplier_id is None

    def test_history_filters_by_opportunity(self, memory):
        memory.save_match(_match_input("opp-1"), [])
        memory.save_match(_match_input("opp-2"), [])
        assert len(memory.get_recent_matches()) == 2
        assert [m["opportunity_id"] for m in memory.get_recent_matches("opp-2")] == ["opp-2"]

    def test_missing_match(self, memory):
        assert memory.get_match("nope") is None


class TestAssessments:
    def test_save_and_get(self, memory):
        result = {"overall": {"overall_score": 87, "readiness_level": "good", "critical_issue_count": 0}}
        assessment_id = memory.save_assessment({"title": "Switch refresh"}, result, traces=[{"type": "llm"}])

        stored = memory.get_assessment(assessment_id)
        assert stored["result"] == result
        assert stored["traces"] == [{"type": "llm"}]

        [recent] = memory.get_recent_assessments()
        assert recent["title"] == "Switch refresh"
        assert recent["readiness_level"] == "good"


class TestErrors:
    def test_save_error(self, memory):
        memory.save_error("MissingAssessmentError", "missing: quality", context={"title": "t"})
        [error] = memory.get_recent_errors()
        assert error["error_type"] == "MissingAssessmentError"
        assert error["context"] == {"title": "t"}


class TestPersistence:
    def test_survives_reopen(self, tmp_path):
        path = str(tmp_path / "reopen.db")
        match_id = MemoryStore(path).save_match(_match_input(), [])
        assert MemoryStore(path).get_match(match_id) is not None

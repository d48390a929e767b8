"""競合検出のテスト"""

from src.task_sync.conflicts import detect_conflicts
from src.todo.models import Task, TodoState


def _state_with(text: str) -> tuple[TodoState, str]:
    state = TodoState(migrated=True)
    record = state.add_task(Task(text=text), "note.md")
    return state, record.identifier


def test_both_sides_changed_differently_is_conflict() -> None:
    """両方が独立に変更された"""
    state, identifier = _state_with("Write report")
    daily = [Task(text="Write report draft", identifier=identifier)]
    todo = [Task(text="Write final report", identifier=identifier)]

    conflicts = detect_conflicts(state, daily, todo)

    assert len(conflicts) == 1
    assert conflicts[0].identifier == identifier
    assert conflicts[0].text_from_daily == "Write report draft"
    assert conflicts[0].text_from_todo == "Write final report"
    assert "text differs" in conflicts[0].reason


def test_completion_divergence_is_conflict() -> None:
    """本文が同じでも完了状態が異なる"""
    state, identifier = _state_with("Write report")
    daily = [Task(text="Write report v2", identifier=identifier, completed=True)]
    todo = [Task(text="Write report v2", identifier=identifier)]

    conflicts = detect_conflicts(state, daily, todo)

    assert len(conflicts) == 1
    assert "completion differs" in conflicts[0].reason


def test_one_sided_change_is_not_conflict() -> None:
    """片側だけの変更は競合ではない"""
    state, identifier = _state_with("Write report")
    daily = [Task(text="Write report", identifier=identifier)]
    todo = [Task(text="Write final report", identifier=identifier)]

    assert detect_conflicts(state, daily, todo) == []


def test_same_change_on_both_sides_is_not_conflict() -> None:
    """両側が同じ変更をした"""
    state, identifier = _state_with("Write report")
    daily = [Task(text="Write final report", identifier=identifier)]
    todo = [Task(text="Write final report", identifier=identifier)]

    assert detect_conflicts(state, daily, todo) == []


def test_unknown_or_archived_identifier_ignored() -> None:
    """Storeにない・アーカイブ済みの識別子は対象外"""
    state, identifier = _state_with("Write report")
    state.get_task(identifier).archived = True
    daily = [Task(text="a", identifier=identifier), Task(text="b", identifier="ffffffff")]
    todo = [Task(text="c", identifier=identifier), Task(text="d", identifier="ffffffff")]

    assert detect_conflicts(state, daily, todo) == []

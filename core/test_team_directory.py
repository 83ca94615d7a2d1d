import threading
import uuid

import pytest

from core.exceptions import DuplicateTeamName, ParticipantNotInTeam, TeamNotFound
from core.team_directory import TeamDirectory


@pytest.fixture
def directory(flaky) -> TeamDirectory:
    d = TeamDirectory(flaky)
    d.load()
    return d


def test_create_team_assigns_increasing_ids(directory) -> None:
    red = directory.create_team("Red", "Red Team", 0xFF0000)
    blue = directory.create_team("Blue", "Blue Team", "#0000FF")

    assert red.id == 1
    assert blue.id == 2
    assert blue.color == 0x0000FF
    assert [t.name for t in directory.list_teams()] == ["Red", "Blue"]


def test_duplicate_name_is_case_insensitive(directory) -> None:
    directory.create_team("Red", "Red Team", 0xFF0000)

    with pytest.raises(DuplicateTeamName):
        directory.create_team("red", "Another Red", 0xFF0000)

    assert len(directory.list_teams()) == 1


def test_display_name_defaults_to_name(directory) -> None:
    team = directory.create_team("Green")
    assert team.display_name == "Green"


def test_invalid_color_is_rejected(directory) -> None:
    with pytest.raises(ValueError):
        directory.create_team("Red", "Red Team", "not-a-color")
    assert directory.list_teams() == []


def test_create_team_store_failure_leaves_cache_untouched(directory, flaky) -> None:
    flaky.fail("insert_one")

    assert directory.create_team("Red", "Red Team", 0xFF0000) is None
    assert directory.list_teams() == []
    with pytest.raises(TeamNotFound):
        directory.get_team_by_name("Red")


def test_ids_are_not_reused_after_delete(directory) -> None:
    first = directory.create_team("Red")
    assert directory.delete_team(first.id)

    second = directory.create_team("Blue")
    assert second.id == first.id + 1


def test_lookup_by_id_and_name(directory) -> None:
    team = directory.create_team("Red", "Red Team", 0xFF0000)

    assert directory.get_team(team.id).name == "Red"
    assert directory.get_team_by_name("  RED ").id == team.id
    with pytest.raises(TeamNotFound):
        directory.get_team(42)
    with pytest.raises(TeamNotFound):
        directory.get_team_by_name("Purple")


def test_returned_teams_are_copies(directory) -> None:
    team = directory.create_team("Red")
    directory.add_participant_to_team("p1", team.id)

    listed = directory.list_teams()
    listed[0].members.add("intruder")
    listed[0].name = "Hacked"
    listed.clear()

    fresh = directory.get_team(team.id)
    assert fresh.name == "Red"
    assert fresh.members == {"p1"}


def test_update_team_changes_fields(directory) -> None:
    team = directory.create_team("Red", "Red Team", 0xFF0000)

    team.name = "Crimson"
    team.display_name = "Crimson Tide"
    team.color = "#990000"
    assert directory.update_team(team)

    stored = directory.get_team(team.id)
    assert (stored.name, stored.display_name, stored.color) == ("Crimson", "Crimson Tide", 0x990000)
    assert directory.get_team_by_name("crimson").id == team.id


def test_update_team_rejects_name_of_another_team(directory) -> None:
    directory.create_team("Red")
    blue = directory.create_team("Blue")

    blue.name = "RED"
    with pytest.raises(DuplicateTeamName):
        directory.update_team(blue)
    assert directory.get_team(blue.id).name == "Blue"


def test_update_team_store_failure_keeps_old_values(directory, flaky) -> None:
    team = directory.create_team("Red")
    flaky.fail("update_one")

    team.name = "Crimson"
    assert directory.update_team(team) is False
    assert directory.get_team(team.id).name == "Red"


def test_moving_participant_between_teams(directory) -> None:
    red = directory.create_team("Red")
    blue = directory.create_team("Blue")
    participant = uuid.uuid4()

    assert directory.add_participant_to_team(participant, red.id)
    assert directory.add_participant_to_team(participant, blue.id)

    assert directory.get_participant_team(participant).id == blue.id
    assert str(participant) not in directory.get_team(red.id).members
    assert str(participant) in directory.get_team(blue.id).members


def test_add_to_unknown_team_raises(directory) -> None:
    with pytest.raises(TeamNotFound):
        directory.add_participant_to_team("p1", 7)


def test_add_participant_store_failure_keeps_index(directory, flaky) -> None:
    red = directory.create_team("Red")
    flaky.fail("upsert_one")

    assert directory.add_participant_to_team("p1", red.id) is False
    with pytest.raises(ParticipantNotInTeam):
        directory.get_participant_team("p1")
    assert directory.get_team(red.id).members == set()


def test_remove_participant(directory, flaky) -> None:
    red = directory.create_team("Red")
    directory.add_participant_to_team("p1", red.id)

    assert directory.remove_participant_from_team("p1")
    assert directory.get_team(red.id).members == set()
    with pytest.raises(ParticipantNotInTeam):
        directory.get_participant_team("p1")
    assert flaky.find_one("participants", {"participant_id": "p1"})["team_id"] is None

    with pytest.raises(ParticipantNotInTeam):
        directory.remove_participant_from_team("p1")


def test_delete_team_unassigns_members(directory, flaky) -> None:
    red = directory.create_team("Red")
    directory.add_participant_to_team("p1", red.id)
    directory.add_participant_to_team("p2", red.id)

    assert directory.delete_team(red.id)

    with pytest.raises(TeamNotFound):
        directory.get_team(red.id)
    for pid in ("p1", "p2"):
        with pytest.raises(ParticipantNotInTeam):
            directory.get_participant_team(pid)
    assert flaky.find("participants", {"team_id": {"$ne": None}}) == []


def test_delete_team_store_failure_changes_nothing(directory, flaky) -> None:
    red = directory.create_team("Red")
    directory.add_participant_to_team("p1", red.id)
    flaky.fail("delete_one")

    assert directory.delete_team(red.id) is False
    assert directory.get_participant_team("p1").id == red.id


def test_delete_team_cascade_failure_is_best_effort(directory, flaky) -> None:
    red = directory.create_team("Red")
    directory.add_participant_to_team("p1", red.id)
    flaky.fail("update_one")

    assert directory.delete_team(red.id)
    with pytest.raises(ParticipantNotInTeam):
        directory.get_participant_team("p1")

    # The stale reference is ignored on the next load.
    reloaded = TeamDirectory(flaky)
    reloaded.load()
    assert reloaded.memberships() == {}


def test_delete_unknown_team_raises(directory) -> None:
    with pytest.raises(TeamNotFound):
        directory.delete_team(3)


def test_load_restores_teams_members_and_counter(directory, flaky) -> None:
    red = directory.create_team("Red", "Red Team", 0xFF0000)
    blue = directory.create_team("Blue", "Blue Team", 0x0000FF)
    directory.add_participant_to_team("p1", red.id, display_name="Alice")
    directory.add_participant_to_team("p2", blue.id)

    reloaded = TeamDirectory(flaky)
    reloaded.load()

    assert [t.name for t in reloaded.list_teams()] == ["Red", "Blue"]
    assert reloaded.get_participant_team("p1").id == red.id
    assert reloaded.get_team(blue.id).members == {"p2"}
    assert reloaded.display_names() == {"p1": "Alice"}
    assert reloaded.create_team("Green").id == blue.id + 1


def test_concurrent_create_team_assigns_unique_ids(directory) -> None:
    count = 20
    created = []

    def worker(i: int) -> None:
        created.append(directory.create_team(f"Team {i}"))

    threads = [threading.Thread(target=worker, args=(i,)) for i in range(count)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    ids = [team.id for team in created]
    assert len(set(ids)) == count
    assert sorted(ids) == list(range(1, count + 1))
    assert len(directory.list_teams()) == count


def test_reserve_ids_skips_used_ids(directory) -> None:
    directory.create_team("Red")

    directory.reserve_ids([4, 2])
    directory.reserve_ids([])

    assert directory.create_team("Blue").id == 5

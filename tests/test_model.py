import pytest

from analysis import DataCollector
from college_model import CollegeModel, InvariantError
from conftest import add_student, make_config


def campus(years=1, collector=True, **overrides):
    params = dict(
        NUM_SIMULATION_YEARS=years,
        INIT_NUM_PEOPLE=30,
        INIT_NUM_GROUPS=4,
        NUM_FRESHMEN_ENROLLING_PER_YEAR=10,
        NUM_NEW_GROUPS_PER_YEAR=2,
        MAX_GROUP_SIZE=10,
    )
    params.update(overrides)
    return CollegeModel(make_config(**params), data_collector=DataCollector() if collector else None)


def test_initial_population():
    model = campus(INIT_NUM_PEOPLE=50, INIT_NUM_GROUPS=5)

    assert len(model.students) == 50
    assert len(model.graph) == 50
    assert all(1 <= s.year <= 4 for s in model.students)
    assert len(model.groups) == 5
    assert all(3 <= len(g) <= 10 for g in model.groups)
    assert model.running
    model.check_invariants()


def test_one_year_means_nine_steps_each():
    model = campus(years=1)
    initial = list(model.students)
    initial_years = [s.year for s in initial]

    model.run()

    assert len(model.students) == 40
    assert all(s.months_active == 9 for s in model.students)
    assert [s.year for s in initial] == [y + 1 for y in initial_years]
    assert sorted(s.year for s in model.students if s not in initial) == [1] * 10
    assert not model.running
    assert model.event_schedule.sealed
    assert model.current_time == 12.0


def test_summer_break_between_years():
    model = campus(years=2)

    model.run()

    active = sorted(s.months_active for s in model.students)
    assert set(active) <= {9, 18}
    # last year's freshmen are the only ones with a single academic year
    assert active.count(9) == 10
    assert model.current_time == 24.0


def test_terminal_year_has_no_churn():
    model = campus(years=2, DROPOUT_INTERCEPT=1.0)

    model.run()

    collector = model.data_collector
    assert [d.year for d in collector.year_data] == [0, 1]
    assert {record.snapshot.year for record in collector.departures} <= {0}
    assert collector.year_data[1].graduates == 0
    assert collector.year_data[1].dropouts == 0
    # everyone left at the end of year 0
    assert collector.year_data[0].population == 0


def test_population_is_conserved():
    model = campus(years=4)

    model.run()

    previous = 30
    for data in model.data_collector.year_data:
        assert data.population == previous + 10 - data.graduates - data.dropouts
        previous = data.population
    assert previous == len(model.students)


def test_departed_students_leave_no_trace():
    model = campus(years=3)

    model.run()

    departed = {record.snapshot.agent_id for record in model.data_collector.departures}
    assert departed
    present = {s.unique_id for s in model.students}
    assert not departed & present
    for student in model.students:
        assert not departed & set(student.last_interaction)
    for group in model.groups:
        assert not departed & {m.unique_id for m in group.members()}
    assert not departed & {n for edge in model.graph.edges() for n in edge}
    model.check_invariants()


def test_only_seniors_graduate():
    model = campus(years=3)

    model.run()

    graduates = [r.snapshot for r in model.data_collector.departures if r.reason == 'graduate']
    assert graduates
    assert all(s.year_in_school >= 4 for s in graduates)
    assert len(model.data_collector.changes) == len(graduates)


def test_groups_fold_and_are_founded():
    model = campus(years=3, GROUP_DISSOLUTION_PROBABILITY=1.0)

    model.run()

    # every group folds at the end of years 0 and 1, the last year's survive
    assert len(model.groups) == 2
    for student in model.students:
        assert all(g in model.groups for g in student.groups)


def test_always_friends():
    model = campus(years=1, FRIENDSHIP_COEFFICIENT=0.0, FRIENDSHIP_INTERCEPT=1.0, DECAY_THRESHOLD=100)

    model.run()

    assert model.graph.number_of_edges() > 0
    assert all(s.num_friends > 0 for s in model.students)
    model.check_invariants()


def test_never_friends():
    model = campus(years=2, FRIENDSHIP_COEFFICIENT=0.0, FRIENDSHIP_INTERCEPT=0.0)

    model.run()

    assert model.graph.number_of_edges() == 0
    assert all(s.alienation() == 1.0 for s in model.students)
    counts = model.data_collector.year_data[0].interaction_counts
    assert counts['meetNoFriends'] > 0
    assert 'meetFriends' not in counts


def test_same_seed_same_campus():
    first = campus(years=2, collector=False, SEED=5)
    second = campus(years=2, collector=False, SEED=5)

    first.run()
    second.run()

    assert first.graph.number_of_edges() == second.graph.number_of_edges()
    assert [s.num_friends for s in first.students] == [s.num_friends for s in second.students]
    assert [s.year for s in first.students] == [s.year for s in second.students]


def test_forced_opposite_race_friends():
    model = campus(PROBABILITY_WHITE=0.5, INITIAL_NUM_FORCED_OPPOSITE_RACE_FRIENDS=1)

    races = {s.race for s in model.students}
    assert len(races) == 2
    for student in model.students:
        assert any(f.race != student.race for f in student.friends)
    model.check_invariants()


def test_run_until_and_step():
    model = campus(years=2)

    model.run(until=9.0)
    assert model.current_time == 9.0
    assert model.current_year == 0
    assert len(model.data_collector.year_data) == 1

    model.step()
    assert model.current_time == 12.0
    assert model.current_year == 1
    assert model.month_of_year == 0


def test_check_invariants_catches_one_sided_friendship(model):
    a = add_student(model)
    b = add_student(model)
    a.last_interaction[b.unique_id] = 0.0

    with pytest.raises(InvariantError):
        model.check_invariants()


def test_check_invariants_catches_forgotten_group(model):
    a = add_student(model)
    model.found_group()
    a.groups.clear()

    with pytest.raises(InvariantError):
        model.check_invariants()

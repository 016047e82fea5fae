from __future__ import annotations
from enum import Enum
from typing import TYPE_CHECKING, Dict, Iterable, List, Sequence, Tuple

import mesa
import networkx as nx
import numpy as np

from config import SimConfig
from event_queue import Schedule

if TYPE_CHECKING:
    from analysis import DataCollector

NUM_MONTHS_IN_ACADEMIC_YEAR = 9
NUM_MONTHS_IN_SUMMER = 3
NUM_MONTHS_IN_YEAR = NUM_MONTHS_IN_ACADEMIC_YEAR + NUM_MONTHS_IN_SUMMER

# offset of a student's monthly step within the month
STUDENT_STEP_OFFSET = 0.5

GRADUATION_YEAR = 4
REQUIRED_NUM_FRIENDS = 3.0


class InvariantError(AssertionError):
    pass


class InteractionKind(Enum):
    TICKLE = 'tickle'
    MEET_FRIENDS = 'meetFriends'
    MEET_NO_FRIENDS = 'meetNoFriends'
    DECAY = 'decay'


class Race(Enum):
    WHITE = 'WHITE'
    MINORITY = 'MINORITY'


class Gender(Enum):
    MALE = 'MALE'
    FEMALE = 'FEMALE'


class AttributeVector:
    """
    The traits of one student, in three kinds:
    - constant: booleans fixed at creation (e.g. "where are you from?")
    - independent: values in [0, 1] that drift independently of each other
    - dependent: raw values that only mean something once normalized to sum
      to 1, so having more of one means having relatively less of the others.
      Always read them through normalized_dependent().
    """
    def __init__(self,
                 constant: Sequence[bool],
                 independent: Sequence[float],
                 dependent: Sequence[float]):
        self.constant = np.array(constant, dtype=bool)
        self.constant.flags.writeable = False
        self.independent = np.array(independent, dtype=float)
        self.dependent = np.array(dependent, dtype=float)

    @classmethod
    def random(cls,
               rng: np.random.Generator,
               n_constant: int,
               n_independent: int,
               n_dependent: int) -> AttributeVector:
        constant = rng.random(n_constant) < 0.5
        # degrees in (0, 1], never exactly zero
        independent = 1.0 - rng.random(n_independent)
        dependent = 1.0 - rng.random(n_dependent)
        return cls(constant, independent, dependent)

    def normalized_dependent(self) -> np.ndarray:
        total = self.dependent.sum()
        if total == 0:
            return self.dependent.copy()
        return self.dependent / total

    def set_independent(self, index: int, value: float):
        self.independent[index] = value

    def set_dependent(self, index: int, value: float):
        """
        Set the *normalized* value of dependent attribute `index`. Only the raw
        value at `index` is rewritten, against the sum of the other raw values,
        so the normalized vector still sums to 1.
        """
        if len(self.dependent) == 1:
            # a single dependent attribute always normalizes to 1
            if not np.isclose(value, 1.0):
                raise ValueError(f"a lone dependent attribute is always 1.0, got {value}")
            return

        if not 0.0 <= value < 1.0:
            raise ValueError(f"normalized dependent value must be in [0, 1), got {value}")

        others = np.delete(self.dependent, index).sum()
        self.dependent[index] = (value * others) / (1.0 - value)

    def snapshot(self) -> Tuple[np.ndarray, np.ndarray]:
        return self.independent.copy(), self.normalized_dependent()

    def copy(self) -> AttributeVector:
        return AttributeVector(self.constant, self.independent, self.dependent)


def sum_distance_count(pool_size: int, vec1: np.ndarray, vec2: np.ndarray) -> float:
    # compares the totals of the two vectors, not the positions
    return pool_size - abs(float(vec1.sum()) - float(vec2.sum()))


def calculate_similarity(a: Student, b: Student, config: SimConfig) -> float:
    """
    Perceived similarity of two students on a 0 to 1 scale (1 = identical).

    Every kind of attribute is counted in "equivalent number of attributes"
    and weighted, then divided by the best possible rating.
    """
    constant_count = int(np.count_nonzero(a.attributes.constant == b.attributes.constant))

    indep_count = sum_distance_count(
        config.independent_attribute_pool,
        a.attributes.independent,
        b.attributes.independent,
    )

    dep_count = sum_distance_count(
        config.dependent_attribute_pool,
        a.attributes.normalized_dependent(),
        b.attributes.normalized_dependent(),
    )

    race_count = 1 if a.race == b.race else 0
    gen_count = 1 if a.gender == b.gender else 0

    similarity = ((constant_count * config.const_weight)
                  + (indep_count * config.indep_weight)
                  + (dep_count * config.dep_weight)
                  + (race_count * config.race_weight)
                  + (gen_count * config.gen_weight))

    return similarity / config.max_similarity_rating


def friendship_accepted(similarity: float, coefficient: float, intercept: float, draw: float) -> bool:
    # linear in similarity and deliberately unclamped
    return draw <= coefficient * similarity + intercept


def race_pair(a: Student, b: Student) -> str:
    return a.race.value if a.race == b.race else 'MIXED'


class FriendshipGraph:
    """
    Undirected friendship network keyed by student id. No self loops, no
    parallel edges, edges carry no payload: when two students last interacted
    is kept by the students themselves.
    """
    def __init__(self):
        self.graph = nx.Graph()

    def __len__(self):
        return self.graph.number_of_nodes()

    def __contains__(self, student: Student) -> bool:
        return student.unique_id in self.graph

    def add_node(self, student: Student):
        self.graph.add_node(student.unique_id, student=student, race=student.race.value)

    def remove_node(self, student: Student):
        self.graph.remove_node(student.unique_id)

    def student(self, unique_id: int) -> Student:
        return self.graph.nodes[unique_id]['student']

    def students(self) -> List[Student]:
        return [data['student'] for _, data in self.graph.nodes(data=True)]

    def add_edge(self, a: Student, b: Student):
        if a.unique_id == b.unique_id:
            raise ValueError(f"student {a.unique_id} cannot befriend themselves")
        if a not in self or b not in self:
            raise InvariantError(f"edge {a.unique_id}-{b.unique_id} between students not in the graph")
        self.graph.add_edge(a.unique_id, b.unique_id)

    def remove_edge(self, a: Student, b: Student):
        self.graph.remove_edge(a.unique_id, b.unique_id)

    def has_edge(self, a: Student, b: Student) -> bool:
        return self.graph.has_edge(a.unique_id, b.unique_id)

    def neighbors(self, student: Student) -> List[Student]:
        nodes = self.graph.nodes
        return [nodes[n]['student'] for n in self.graph.adj[student.unique_id]]

    def degree(self, student: Student) -> int:
        return len(self.graph.adj[student.unique_id])

    def edges(self) -> List[Tuple[int, int]]:
        return [(min(u, v), max(u, v)) for u, v in self.graph.edges()]

    def number_of_edges(self) -> int:
        return self.graph.number_of_edges()


class Group:
    """
    A club, team or class section. Members are a biased pool of people a
    student keeps running into.
    """
    def __init__(self, group_id: int, members: Iterable[Student] = ()):
        self.group_id = group_id
        self._members: List[Student] = []
        for student in members:
            self.join(student)

    def __len__(self):
        return len(self._members)

    def __contains__(self, student: Student) -> bool:
        return any(member is student for member in self._members)

    def __repr__(self):
        return f"Group({self.group_id}, size={len(self)})"

    def members(self) -> List[Student]:
        return list(self._members)

    def join(self, student: Student):
        if student in self:
            return
        self._members.append(student)
        student.groups.append(self)

    def leave(self, student: Student):
        if student not in self:
            raise ValueError(f"student {student.unique_id} is not in group {self.group_id}")
        if not any(group is self for group in student.groups):
            raise InvariantError(f"student {student.unique_id} lost its back-reference to group {self.group_id}")

        self._members = [m for m in self._members if m is not student]
        student.groups = [g for g in student.groups if g is not self]

    def dissolve(self):
        for student in list(self._members):
            self.leave(student)


class Student(mesa.Agent):
    def __init__(self,
                 model: CollegeModel,
                 year: int = 1,
                 attributes: AttributeVector | None = None,
                 race: Race | None = None,
                 gender: Gender | None = None,
                 extroversion: float | None = None):
        self.model: CollegeModel
        self.unique_id: int
        super().__init__(model)

        config = model.config
        rng = model.random_stream

        self.attributes = attributes or AttributeVector.random(
            rng,
            config.constant_attribute_pool,
            config.independent_attribute_pool,
            config.dependent_attribute_pool,
        )
        if race is None:
            race = Race.WHITE if rng.random() <= config.probability_white else Race.MINORITY
        if gender is None:
            gender = Gender.FEMALE if rng.random() <= config.probability_female else Gender.MALE
        self.race = race
        self.gender = gender
        self.extroversion = config.extroversion if extroversion is None else extroversion

        self.groups: List[Group] = []
        # peer id -> month this pair last interacted, present iff they are friends
        self.last_interaction: Dict[int, float] = {}
        # year in school - 1 -> (independent, normalized dependent) at the start of that year
        self.attribute_history: Dict[int, Tuple[np.ndarray, np.ndarray]] = {}
        self.months_active = 0

        self.year = 0
        self.set_year(year)

    def __repr__(self):
        friends = self.friends
        if not friends:
            return f"Student {self.unique_id} (lonely with no friends)"
        return f"Student {self.unique_id} (friends with {','.join(str(f.unique_id) for f in friends)})"

    @property
    def friends(self) -> List[Student]:
        return self.model.graph.neighbors(self)

    @property
    def num_friends(self) -> int:
        return self.model.graph.degree(self)

    def friends_with(self, other: Student) -> bool:
        return self.model.graph.has_edge(self, other)

    def alienation(self) -> float:
        """
        How alienated this student feels, from 0 to 1. Fewer friends and more
        extroversion both make it worse. Nobody to talk to at all counts as
        fully alienated.
        """
        friend_fraction = self.num_friends / REQUIRED_NUM_FRIENDS
        if friend_fraction == 0:
            return 1.0
        return min(1.0, self.extroversion / friend_fraction)

    def set_year(self, year: int):
        self.year = year
        self.attribute_history[year - 1] = self.attributes.snapshot()

    def increment_year(self):
        self.set_year(self.year + 1)

    def has_full_data(self) -> bool:
        return all(y in self.attribute_history for y in range(GRADUATION_YEAR))

    def attribute_change(self) -> Tuple[float, float]:
        """Mean absolute change of (independent, dependent) attributes since the earliest snapshot."""
        indep_start, dep_start = self.attribute_history[min(self.attribute_history)]
        indep_now, dep_now = self.attributes.snapshot()

        indep_change = float(np.mean(np.abs(indep_now - indep_start))) if indep_now.size else 0.0
        dep_change = float(np.mean(np.abs(dep_now - dep_start))) if dep_now.size else 0.0
        return indep_change, dep_change

    def join_group(self, group: Group):
        group.join(self)

    def leave_group(self, group: Group):
        group.leave(self)

    def is_in_group(self, group: Group) -> bool:
        return any(g is group for g in self.groups)

    def groupmates(self) -> List[Student]:
        """Everyone in at least one of this student's groups, listed once, this student included."""
        seen: Dict[int, Student] = {}
        for group in self.groups:
            for member in group.members():
                seen.setdefault(member.unique_id, member)
        return list(seen.values())

    def make_friends(self, other: Student):
        self.model.graph.add_edge(self, other)
        now = self.model.current_time
        self.last_interaction[other.unique_id] = now
        other.last_interaction[self.unique_id] = now

    def end_friendship(self, other: Student):
        if other.unique_id not in self.last_interaction or self.unique_id not in other.last_interaction:
            raise InvariantError(
                f"friendship {self.unique_id}-{other.unique_id} is missing a last interaction entry"
            )
        self.model.graph.remove_edge(self, other)
        del self.last_interaction[other.unique_id]
        del other.last_interaction[self.unique_id]

    def tickle(self, other: Student):
        """Refresh an existing friendship."""
        if not self.friends_with(other):
            raise InvariantError(f"student {self.unique_id} tickled non-friend {other.unique_id}")

        now = self.model.current_time
        self.last_interaction[other.unique_id] = now
        other.last_interaction[self.unique_id] = now

        if self.model.data_collector:
            self.model.data_collector.record_interaction(
                self.model.current_year, self.unique_id, other.unique_id, InteractionKind.TICKLE
            )

    def meet(self, other: Student) -> bool:
        """Meet someone who is not a friend yet, and maybe become friends."""
        config = self.model.config
        similarity = calculate_similarity(self, other, config)
        friends = friendship_accepted(
            similarity,
            config.friendship_coefficient,
            config.friendship_intercept,
            self.model.random_stream.random(),
        )
        if friends:
            self.make_friends(other)

        if self.model.data_collector:
            year = self.model.current_year
            self.model.data_collector.record_similarity(year, race_pair(self, other), similarity, friends)
            self.model.data_collector.record_interaction(
                year, self.unique_id, other.unique_id, InteractionKind.MEET_FRIENDS if friends else InteractionKind.MEET_NO_FRIENDS
            )

        return friends

    def encounter(self, number: int, pool: Sequence[Student]):
        """
        Run into `number` random people from `pool` (never yourself). Friends
        get tickled, everyone else gets met.
        """
        number = min(number, len(pool))
        if number == 0 or not any(p is not self for p in pool):
            return

        rng = self.model.random_stream
        for _ in range(number):
            other = self
            while other is self:
                other = pool[rng.integers(len(pool))]

            if self.friends_with(other):
                self.tickle(other)
            else:
                self.meet(other)

    def personality_drift(self):
        """Nudge mutable attributes toward the average of this student's friends."""
        friends = self.friends
        if not friends:
            return

        config = self.model.config
        rng = self.model.random_stream
        attrs = self.attributes

        indep_average = np.mean([f.attributes.independent for f in friends], axis=0)
        dep_average = np.mean([f.attributes.normalized_dependent() for f in friends], axis=0)

        for i in range(attrs.independent.size):
            distance = indep_average[i] - attrs.independent[i]
            if rng.random() < config.likelihood_of_randomly_changing_attribute:
                increment = rng.random() * config.max_drift_fraction * distance
                attrs.set_independent(i, attrs.independent[i] + increment)

        for i in range(attrs.dependent.size):
            # re-read every time, each write renormalizes the others
            current = attrs.normalized_dependent()[i]
            distance = dep_average[i] - current
            if rng.random() < config.likelihood_of_randomly_changing_attribute:
                increment = rng.random() * config.max_drift_fraction * distance
                attrs.set_dependent(i, current + increment)

    def decay(self):
        """End every friendship nobody has refreshed for DECAY_THRESHOLD months."""
        now = self.model.current_time
        threshold = self.model.config.decay_threshold

        for friend_id, last in list(self.last_interaction.items()):
            if now - last < threshold:
                continue

            friend = self.model.graph.student(friend_id)
            self.end_friendship(friend)

            if self.model.data_collector:
                self.model.data_collector.record_interaction(
                    self.model.current_year, self.unique_id, friend_id, InteractionKind.DECAY
                )

    def force_opposite_race_friend(self) -> Student | None:
        candidates = [
            s for s in self.model.students
            if s is not self and s.race != self.race and not self.friends_with(s)
        ]
        if not candidates:
            return None

        friend = candidates[self.model.random_stream.integers(len(candidates))]
        self.make_friends(friend)
        return friend

    def leave_university(self):
        """Drop out or graduate: leave every group and every friendship."""
        for group in list(self.groups):
            group.leave(self)

        for friend in self.friends:
            if self.unique_id not in friend.last_interaction:
                raise InvariantError(
                    f"student {friend.unique_id} has no last interaction with friend {self.unique_id}"
                )
            del friend.last_interaction[self.unique_id]
        self.last_interaction.clear()

        self.model.graph.remove_node(self)
        self.remove()

    def step(self):
        # may have graduated or dropped out since this step was scheduled
        if self not in self.model.graph:
            return

        config = self.model.config

        groupmates = self.groupmates()
        if len(groupmates) > 1:
            self.encounter(config.num_to_meet_group, groupmates)

        if len(self.model.students) > 1:
            self.encounter(config.num_to_meet_pop, self.model.students)

        self.personality_drift()
        self.decay()
        self.months_active += 1

        month = self.model.month_of_year
        if month + 1 < NUM_MONTHS_IN_ACADEMIC_YEAR:
            self.model.event_schedule.schedule_once_in(1, self.step, label=f'student {self.unique_id}')
        elif not self.model.is_last_year():
            # sleep through the summer
            self.model.event_schedule.schedule_once_in(
                NUM_MONTHS_IN_YEAR - month, self.step, label=f'student {self.unique_id}'
            )


class CollegeModel(mesa.Model):
    """
    A campus. Owns the roster, the groups, the friendship graph and the event
    schedule, and runs the yearly cycle:

    - year start ("August"): everyone moves up a year, a freshman class
      enrolls, new groups are founded.
    - year end ("May"): snapshots are written, seniors graduate, alienated
      students may drop out, some groups fold.
    """
    def __init__(self,
                 config: SimConfig,
                 data_collector: DataCollector | None = None,
                 rng: np.random.Generator | None = None):
        super().__init__(seed=config.seed)

        self.config = config
        self.random_stream: np.random.Generator = rng or np.random.default_rng(config.seed)
        self.data_collector = data_collector

        self.event_schedule = Schedule()
        self.graph = FriendshipGraph()
        self.students: List[Student] = []
        self.groups: List[Group] = []
        self._next_group_id = 0

        initial = [
            self.enroll_student(year=int(self.random_stream.integers(4)) + 1)
            for _ in range(config.init_num_people)
        ]
        self.assign_forced_friends(initial)

        for _ in range(config.init_num_groups):
            self.found_group()

        self.event_schedule.schedule_once(0.0, self.start_year, label='year start')
        self.running = True

    @property
    def current_time(self) -> float:
        return self.event_schedule.time

    @property
    def current_year(self) -> int:
        return int(self.current_time // NUM_MONTHS_IN_YEAR)

    @property
    def month_of_year(self) -> int:
        return int(self.current_time) % NUM_MONTHS_IN_YEAR

    def is_last_year(self) -> bool:
        return self.current_year >= self.config.num_simulation_years - 1

    def enroll_student(self, year: int = 1) -> Student:
        student = Student(self, year=year)
        self.students.append(student)
        self.graph.add_node(student)
        self.event_schedule.schedule_once_in(STUDENT_STEP_OFFSET, student.step, label=f'student {student.unique_id}')
        return student

    def assign_forced_friends(self, students: Iterable[Student]):
        for student in students:
            for _ in range(self.config.initial_num_forced_opposite_race_friends):
                if student.force_opposite_race_friend() is None:
                    break

    def found_group(self) -> Group:
        config = self.config
        size = int(self.random_stream.integers(config.min_group_size, config.max_group_size + 1))
        size = min(size, len(self.students))

        indices = self.random_stream.choice(len(self.students), size=size, replace=False) if size else []
        group = Group(self._next_group_id, [self.students[i] for i in indices])
        self._next_group_id += 1
        self.groups.append(group)
        return group

    def withdraw(self, students: Sequence[Student]):
        leaving = {s.unique_id for s in students}
        for student in students:
            student.leave_university()
        self.students = [s for s in self.students if s.unique_id not in leaving]

    def dissolve_groups(self, groups: Sequence[Group]):
        folding = {g.group_id for g in groups}
        for group in groups:
            group.dissolve()
        self.groups = [g for g in self.groups if g.group_id not in folding]

    def start_year(self):
        year = self.current_year
        if year >= self.config.num_simulation_years:
            self.end_simulation()
            return

        if self.data_collector:
            self.data_collector.start_year(year, self)

        for student in self.students:
            student.increment_year()

        freshmen = [self.enroll_student(year=1) for _ in range(self.config.num_freshmen_enrolling_per_year)]
        self.assign_forced_friends(freshmen)

        for _ in range(self.config.num_new_groups_per_year):
            self.found_group()

        self.event_schedule.schedule_once_in(NUM_MONTHS_IN_ACADEMIC_YEAR, self.end_year, label='year end')

    def end_year(self):
        year = self.current_year
        graduates: List[Student] = []
        dropouts: List[Student] = []

        if self.data_collector:
            self.data_collector.snapshot_year(year, self)

        if not self.is_last_year():
            config = self.config
            rng = self.random_stream

            for student in self.students:
                if student.year >= GRADUATION_YEAR:
                    graduates.append(student)
                else:
                    dropout_probability = config.dropout_rate * student.alienation() + config.dropout_intercept
                    if rng.random() <= dropout_probability:
                        dropouts.append(student)

            survival_cutoff = 1.0 - config.group_dissolution_probability
            folding = [g for g in self.groups if rng.random() > survival_cutoff]

            if self.data_collector:
                for student in graduates:
                    self.data_collector.record_departure(year, student, 'graduate')
                for student in dropouts:
                    self.data_collector.record_departure(year, student, 'dropout')

            self.withdraw(graduates + dropouts)
            self.dissolve_groups(folding)

        if self.data_collector:
            self.data_collector.end_year(year, self, n_graduates=len(graduates), n_dropouts=len(dropouts))

        self.event_schedule.schedule_once_in(NUM_MONTHS_IN_SUMMER, self.start_year, label='year start')

    def end_simulation(self):
        self.running = False
        self.event_schedule.seal()

    def check_invariants(self):
        if len(self.graph) != len(self.students):
            raise InvariantError(f"{len(self.graph)} graph nodes for {len(self.students)} students")

        for student in self.students:
            if student not in self.graph:
                raise InvariantError(f"student {student.unique_id} is missing from the graph")
            if student.num_friends != len(student.last_interaction):
                raise InvariantError(
                    f"student {student.unique_id} has {student.num_friends} friends "
                    f"but {len(student.last_interaction)} last interactions"
                )
            for friend_id in student.last_interaction:
                friend = self.graph.student(friend_id)
                if not self.graph.has_edge(student, friend) or student.unique_id not in friend.last_interaction:
                    raise InvariantError(f"friendship {student.unique_id}-{friend_id} is one-sided")
            for group in student.groups:
                if student not in group:
                    raise InvariantError(f"group {group.group_id} forgot member {student.unique_id}")

        for group in self.groups:
            for member in group.members():
                if not member.is_in_group(group):
                    raise InvariantError(f"student {member.unique_id} forgot group {group.group_id}")

    def step(self):
        if not self.event_schedule.step():
            self.running = False

    def run(self, until: float | None = None):
        while self.running:
            next_time = self.event_schedule.peek_time()
            if next_time is None or (until is not None and next_time > until):
                break
            self.step()

from __future__ import annotations
import csv
import logging
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Optional, TextIO, Tuple

import numpy as np
import matplotlib.pyplot as plt
from matplotlib.lines import Line2D

from college_model import InteractionKind

if TYPE_CHECKING:
    from college_model import CollegeModel, Student

logger = logging.getLogger(__name__)

DEBUG_LEVELS = Literal['none', 'summary', 'agent_stats', 'detailed']


@dataclass
class InteractionEvent:
    year: int
    agent_a: int
    agent_b: int
    kind: InteractionKind


@dataclass
class SimilarityEvent:
    year: int
    race_pair: str
    similarity: float
    became_friends: bool


@dataclass
class StudentSnapshot:
    year: int
    agent_id: int
    num_friends: int
    num_groups: int
    race: str
    gender: str
    alienation: float
    year_in_school: int

    @classmethod
    def from_student(cls, year: int, student: Student) -> StudentSnapshot:
        return cls(
            year=year,
            agent_id=student.unique_id,
            num_friends=student.num_friends,
            num_groups=len(student.groups),
            race=student.race.value,
            gender=student.gender.value,
            alienation=student.alienation(),
            year_in_school=student.year,
        )

    def row(self) -> Tuple:
        return (self.year, self.agent_id, self.num_friends, self.num_groups,
                self.race, self.gender, self.alienation, self.year_in_school)


@dataclass
class FriendshipSnapshot:
    year: int
    agent_a: int
    agent_b: int


@dataclass
class ChangeSnapshot:
    year: int
    agent_id: int
    extroversion: float
    num_friends: int
    num_groups: int
    dep_change: float
    indep_change: float
    full_data: bool


@dataclass
class DepartureRecord:
    reason: Literal['graduate', 'dropout']
    snapshot: StudentSnapshot


@dataclass
class YearData:
    year: int
    population: int
    num_groups: int
    num_friendships: int
    mean_friends: float
    mean_alienation: float
    mean_friends_by_race: Dict[str, float] = field(default_factory=dict)
    interaction_counts: Dict[str, int] = field(default_factory=dict)
    graduates: int = 0
    dropouts: int = 0


class CsvEventWriter:
    """
    Appends events to one CSV file per event type in `output_dir`, tagged with
    the run's SIMTAG. Write failures are logged and otherwise ignored.
    """
    FILES = {
        'encounters': ('period', 'id', 'otherId', 'kind'),
        'similarity': ('period', 'racePair', 'similarity', 'friends'),
        'people': ('period', 'id', 'numFriends', 'numGroups', 'race', 'gender', 'alienation', 'yearInSchool'),
        'friendships': ('period', 'id', 'friendId'),
        'dropout': ('period', 'id', 'numFriends', 'numGroups', 'race', 'gender', 'alienation', 'yearInSchool'),
        'change': ('period', 'id', 'extroversion', 'numFriends', 'numGroups', 'depChange', 'indepChange', 'fullData'),
    }

    def __init__(self, output_dir: str | Path, simtag: int):
        self.output_dir = Path(output_dir)
        self.simtag = simtag
        self._files: Dict[str, Tuple[TextIO, Any]] = {}
        self._failed: set[str] = set()

    def path(self, name: str) -> Path:
        return self.output_dir / f"{name}{self.simtag}.csv"

    def _writer(self, name: str):
        if name not in self._files:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.path(name)
            is_new = not path.exists() or path.stat().st_size == 0
            f = open(path, 'a', newline='')
            writer = csv.writer(f)
            if is_new:
                writer.writerow(self.FILES[name])
            self._files[name] = (f, writer)
        return self._files[name][1]

    def write(self, name: str, row: Tuple) -> bool:
        if name in self._failed:
            return False
        try:
            self._writer(name).writerow(row)
            return True
        except OSError as e:
            logger.warning("Could not write to %s: %s", self.path(name), e)
            self._failed.add(name)
            return False

    def flush(self):
        for name, (f, _) in self._files.items():
            try:
                f.flush()
            except OSError as e:
                logger.warning("Could not flush %s: %s", self.path(name), e)

    def close(self):
        for name, (f, _) in self._files.items():
            try:
                f.close()
            except OSError as e:
                logger.warning("Could not close %s: %s", self.path(name), e)
        self._files.clear()


class DataCollector:
    DEBUG_LEVEL_DICT = {
        'none': 0,
        'summary': 1,
        'agent_stats': 2,
        'detailed': 3,
    }

    def __init__(self,
                 debug_level: DEBUG_LEVELS = 'none',
                 n_agents_to_track: int = 5,
                 keep_events: bool = True,
                 writer: CsvEventWriter | None = None):
        self.debug_level = self.DEBUG_LEVEL_DICT[debug_level]
        self.n_agents_to_track = n_agents_to_track
        self.keep_events = keep_events
        self.writer = writer

        self.interactions: List[InteractionEvent] = []
        self.similarities: List[SimilarityEvent] = []
        self.student_snapshots: List[StudentSnapshot] = []
        self.friendship_snapshots: List[FriendshipSnapshot] = []
        self.changes: List[ChangeSnapshot] = []
        self.departures: List[DepartureRecord] = []
        self.year_data: List[YearData] = []

        self.current_year = 0
        self._interaction_counts: Counter = Counter()

    def start_year(self, year: int, model: CollegeModel):
        if self.debug_level >= self.DEBUG_LEVEL_DICT['summary']:
            print(f"\n{'='*80}")
            print(f"YEAR {year} (month {model.current_time:g})")
            print(f"{'='*80}")
        self.current_year = year
        self._interaction_counts = Counter()

    def record_interaction(self, year: int, agent_a: int, agent_b: int, kind: InteractionKind):
        self._interaction_counts[kind.value] += 1
        if self.keep_events:
            self.interactions.append(InteractionEvent(year, agent_a, agent_b, kind))
        if self.writer:
            self.writer.write('encounters', (year, agent_a, agent_b, kind.value))

    def record_similarity(self, year: int, race_pair: str, similarity: float, became_friends: bool):
        if self.keep_events:
            self.similarities.append(SimilarityEvent(year, race_pair, similarity, became_friends))
        if self.writer:
            self.writer.write('similarity', (year, race_pair, similarity, str(became_friends).lower()))

    def snapshot_year(self, year: int, model: CollegeModel):
        """Snapshot every student and every friendship (once per pair)."""
        for student in model.students:
            snapshot = StudentSnapshot.from_student(year, student)
            if self.keep_events:
                self.student_snapshots.append(snapshot)
            if self.writer:
                self.writer.write('people', snapshot.row())

        for agent_a, agent_b in sorted(model.graph.edges()):
            if self.keep_events:
                self.friendship_snapshots.append(FriendshipSnapshot(year, agent_a, agent_b))
            if self.writer:
                self.writer.write('friendships', (year, agent_a, agent_b))

        if self.writer:
            self.writer.flush()

    def record_change(self, year: int, student: Student) -> ChangeSnapshot:
        indep_change, dep_change = student.attribute_change()
        change = ChangeSnapshot(
            year=year,
            agent_id=student.unique_id,
            extroversion=student.extroversion,
            num_friends=student.num_friends,
            num_groups=len(student.groups),
            dep_change=dep_change,
            indep_change=indep_change,
            full_data=student.has_full_data(),
        )
        if self.keep_events:
            self.changes.append(change)
        if self.writer:
            self.writer.write('change', (year, change.agent_id, change.extroversion, change.num_friends,
                                         change.num_groups, dep_change, indep_change, change.full_data))
        return change

    def record_departure(self, year: int, student: Student, reason: Literal['graduate', 'dropout']):
        snapshot = StudentSnapshot.from_student(year, student)
        if self.keep_events:
            self.departures.append(DepartureRecord(reason, snapshot))

        if reason == 'graduate':
            self.record_change(year, student)
        elif self.writer:
            self.writer.write('dropout', snapshot.row())

    def end_year(self, year: int, model: CollegeModel, n_graduates: int = 0, n_dropouts: int = 0):
        friends = np.array([s.num_friends for s in model.students], dtype=float)
        alienation = np.array([s.alienation() for s in model.students], dtype=float)

        by_race: Dict[str, List[int]] = {}
        for student in model.students:
            by_race.setdefault(student.race.value, []).append(student.num_friends)

        data = YearData(
            year=year,
            population=len(model.students),
            num_groups=len(model.groups),
            num_friendships=model.graph.number_of_edges(),
            mean_friends=float(friends.mean()) if friends.size else 0.0,
            mean_alienation=float(alienation.mean()) if alienation.size else 0.0,
            mean_friends_by_race={race: float(np.mean(counts)) for race, counts in sorted(by_race.items())},
            interaction_counts=dict(self._interaction_counts),
            graduates=n_graduates,
            dropouts=n_dropouts,
        )
        self.year_data.append(data)

        if self.writer:
            self.writer.flush()

        if self.debug_level >= self.DEBUG_LEVEL_DICT['summary']:
            self._print_year_summary(data)

        if self.debug_level >= self.DEBUG_LEVEL_DICT['agent_stats']:
            self._print_agent_stats(model)

        if self.debug_level >= self.DEBUG_LEVEL_DICT['detailed']:
            self._print_detailed_info(model)

    def close(self):
        if self.writer:
            self.writer.close()

    def _print_year_summary(self, data: YearData):
        """Print high-level summary of the year"""
        print(f"\nYear Summary:")
        print(f"  Students after graduation/dropout: {data.population}")
        print(f"  Groups: {data.num_groups}")
        print(f"  Friendships: {data.num_friendships}")
        print(f"  Avg friends per student: {data.mean_friends:.2f}")
        print(f"  Avg alienation: {data.mean_alienation:.3f}")
        print(f"  Graduated: {data.graduates}, dropped out: {data.dropouts}")
        for kind, count in sorted(data.interaction_counts.items()):
            print(f"  {kind}: {count}")

    def _print_agent_stats(self, model: CollegeModel):
        """Print statistics for tracked students"""
        print(f"\nStudent Statistics (showing first {self.n_agents_to_track} students):")

        for student in model.students[:self.n_agents_to_track]:
            print(f"\n  Student {student.unique_id} ({student.race.value}, year {student.year}):")
            print(f"    Friends: {student.num_friends}")
            print(f"    Groups: {len(student.groups)}")
            print(f"    Alienation: {student.alienation():.3f}")

    def _print_detailed_info(self, model: CollegeModel):
        print(f"\nDetailed Information (first {self.n_agents_to_track} students):")

        for student in model.students[:self.n_agents_to_track]:
            print(f"\n  {'─'*76}")
            print(f"  {student!r}")
            print(f"  {'─'*76}")

            now = model.current_time
            for friend_id, last in sorted(student.last_interaction.items()):
                print(f"    Friend {friend_id}: last interaction {now - last:g} months ago")

            indep_change, dep_change = student.attribute_change()
            print(f"    Attribute drift since first snapshot: indep {indep_change:.4f}, dep {dep_change:.4f}")


def plot_friend_counts(
    data_collector: DataCollector,
    figsize: tuple = (12, 8),
    save_path: Optional[str | Path] = None,
    show_plot: bool = True,
    linewidth: float = 1.5,
):
    if not data_collector.year_data:
        print("No data collected!")
        return

    years = [d.year for d in data_collector.year_data]
    races = sorted({race for d in data_collector.year_data for race in d.mean_friends_by_race})
    color_map = plt.get_cmap('Set1', max(len(races), 1))
    race_to_color = {race: color_map(i) for i, race in enumerate(races)}

    fig, (ax_friends, ax_alienation) = plt.subplots(2, 1, figsize=figsize, sharex=True)

    for race in races:
        counts = [d.mean_friends_by_race.get(race, np.nan) for d in data_collector.year_data]
        ax_friends.plot(years, counts, color=race_to_color[race], linewidth=linewidth, marker='o')

    ax_friends.plot(years, [d.mean_friends for d in data_collector.year_data],
                    color='black', linestyle='--', linewidth=linewidth)

    legend_elements = [Line2D([0], [0], color=race_to_color[race], linewidth=linewidth*1.5, label=race)
                       for race in races]
    legend_elements.append(Line2D([0], [0], color='black', linestyle='--', linewidth=linewidth, label='all'))
    ax_friends.legend(handles=legend_elements, loc='best', title='Race')
    ax_friends.set_ylabel('Mean friends', fontsize=12)
    ax_friends.set_title('Friendships per Student by Race', fontsize=14, fontweight='bold')
    ax_friends.grid(True, alpha=0.3)

    ax_alienation.plot(years, [d.mean_alienation for d in data_collector.year_data],
                       color='tab:purple', linewidth=linewidth, marker='o')
    ax_alienation.set_xlabel('Year', fontsize=12)
    ax_alienation.set_ylabel('Mean alienation', fontsize=12)
    ax_alienation.grid(True, alpha=0.3)

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Plot saved to {save_path}")

    if show_plot:
        plt.show()

    return fig, (ax_friends, ax_alienation)


def plot_similarity_distribution(
    data_collector: DataCollector,
    num_bins: int = 40,
    figsize: tuple = (12, 6),
    save_path: Optional[str | Path] = None,
    show_plot: bool = True,
    alpha: float = 0.6,
):
    if not data_collector.similarities:
        print("No data collected!")
        return

    pairs = sorted({event.race_pair for event in data_collector.similarities})
    fig, axes = plt.subplots(1, len(pairs), figsize=figsize, squeeze=False, sharey=True)

    for col, pair in enumerate(pairs):
        ax = axes[0, col]
        met = [e for e in data_collector.similarities if e.race_pair == pair]
        became = [e.similarity for e in met if e.became_friends]
        did_not = [e.similarity for e in met if not e.became_friends]

        ax.hist(did_not, bins=num_bins, range=(0, 1), alpha=alpha, label='stayed strangers')
        ax.hist(became, bins=num_bins, range=(0, 1), alpha=alpha, label='became friends')
        ax.set_xlabel('Similarity', fontsize=10)
        ax.set_title(pair, fontsize=11, fontweight='bold')
        ax.grid(True, alpha=0.3)

    axes[0, 0].set_ylabel('Meetings', fontsize=10)
    axes[0, 0].legend(loc='best', fontsize=8)
    plt.suptitle('Similarity at First Meeting', fontsize=14, fontweight='bold')
    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=300, bbox_inches='tight')
        print(f"Plot saved to {save_path}")

    if show_plot:
        plt.show()

    return fig, axes


def plot_segregation_heatmaps(
    same_race_matrix,
    assortativity_matrix,
    param1_range,
    param2_range,
    param1_name,
    param2_name
):
    fig, axes = plt.subplots(1, 2, figsize=(14, 5))

    for ax, matrix, title in (
        (axes[0], same_race_matrix, 'Same-Race Friendship Fraction'),
        (axes[1], assortativity_matrix, 'Race Assortativity'),
    ):
        im = ax.imshow(
            matrix,
            cmap='viridis',
            aspect='auto',
            origin='lower',
            extent=[param1_range[0], param1_range[1], param2_range[0], param2_range[1]]
        )
        ax.set_xlabel(param1_name, fontsize=12)
        ax.set_ylabel(param2_name, fontsize=12)
        ax.set_title(title, fontsize=14, fontweight='bold')
        cbar = plt.colorbar(im, ax=ax)
        cbar.set_label(title, fontsize=11)

    plt.tight_layout()

    return fig, axes

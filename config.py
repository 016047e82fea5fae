"""
Run configuration for the college friendship model.

Every parameter of a run lives in one flat ``SimConfig``. Runners build it
from the UPPER_CASE parameter dicts used throughout the grid scripts:

    >>> config = SimConfig.from_params({'NUM_SIMULATION_YEARS': 4, 'SIMTAG': 7})
    >>> config.race_weight
    5.0

The values are treated as immutable for the duration of a run.
"""
from __future__ import annotations
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict


class ConfigError(ValueError):
    pass


MANDATORY_PARAMS = ('NUM_SIMULATION_YEARS', 'SIMTAG')


@dataclass(frozen=True)
class SimConfig:
    num_simulation_years: int
    simtag: int
    seed: int = 0
    trial_num: int = 1

    # similarity weights, in "equivalent number of attributes"
    race_weight: float = 5.0
    gen_weight: float = 0.0
    const_weight: float = 1.0
    indep_weight: float = 1.5
    dep_weight: float = 2.5

    constant_attribute_pool: int = 0
    independent_attribute_pool: int = 20
    dependent_attribute_pool: int = 20

    probability_white: float = 0.8
    probability_female: float = 1.0
    extroversion: float = 0.5

    friendship_coefficient: float = 0.22
    friendship_intercept: float = 0.05
    num_to_meet_group: int = 10
    num_to_meet_pop: int = 5
    decay_threshold: int = 2
    likelihood_of_randomly_changing_attribute: float = 0.1
    max_drift_fraction: float = 0.2
    initial_num_forced_opposite_race_friends: int = 0

    dropout_rate: float = 0.01
    dropout_intercept: float = 0.05
    group_dissolution_probability: float = 0.25

    init_num_people: int = 4000
    init_num_groups: int = 200
    num_freshmen_enrolling_per_year: int = 1000
    num_new_groups_per_year: int = 10
    min_group_size: int = 3
    max_group_size: int = 30

    def __post_init__(self):
        self.validate()

    @classmethod
    def from_params(cls, params: Dict[str, Any]) -> SimConfig:
        missing = [key for key in MANDATORY_PARAMS if params.get(key) is None]
        if missing:
            raise ConfigError(f"Missing mandatory parameters: {missing}")

        kwargs: Dict[str, Any] = {}
        for f in fields(cls):
            key = f.name.upper()
            if key in params and params[key] is not None:
                kwargs[f.name] = params[key]

        try:
            kwargs = {name: _coerce(cls, name, value) for name, value in kwargs.items()}
        except (TypeError, ValueError) as e:
            raise ConfigError(str(e)) from e

        return cls(**kwargs)

    def to_params(self) -> Dict[str, Any]:
        return {name.upper(): value for name, value in asdict(self).items()}

    @property
    def max_similarity_rating(self) -> float:
        return (self.const_weight * self.constant_attribute_pool
                + self.indep_weight * self.independent_attribute_pool
                + self.dep_weight * self.dependent_attribute_pool
                + self.race_weight + self.gen_weight)

    def validate(self):
        if self.num_simulation_years < 1:
            raise ConfigError("NUM_SIMULATION_YEARS must be at least 1")
        if self.simtag < 0:
            raise ConfigError("SIMTAG must be non-negative")

        for name in ('race_weight', 'gen_weight', 'const_weight', 'indep_weight', 'dep_weight'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name.upper()} must be non-negative")

        for name in ('probability_white', 'probability_female', 'extroversion',
                     'likelihood_of_randomly_changing_attribute', 'max_drift_fraction',
                     'group_dissolution_probability'):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name.upper()} must be in [0, 1], got {value}")

        for name in ('constant_attribute_pool', 'independent_attribute_pool', 'dependent_attribute_pool',
                     'num_to_meet_group', 'num_to_meet_pop', 'initial_num_forced_opposite_race_friends',
                     'init_num_people', 'init_num_groups', 'num_freshmen_enrolling_per_year',
                     'num_new_groups_per_year', 'min_group_size', 'max_group_size'):
            if getattr(self, name) < 0:
                raise ConfigError(f"{name.upper()} must be non-negative")

        if self.decay_threshold < 1:
            raise ConfigError("DECAY_THRESHOLD must be at least 1 month")
        if self.min_group_size > self.max_group_size:
            raise ConfigError("MIN_GROUP_SIZE cannot exceed MAX_GROUP_SIZE")
        if self.max_similarity_rating <= 0:
            raise ConfigError("similarity weights and attribute pools leave nothing to compare")


def _coerce(cls, name: str, value: Any) -> Any:
    annotation = {f.name: f.type for f in fields(cls)}[name]
    if annotation in ('int', int):
        if isinstance(value, bool):
            raise ConfigError(f"{name.upper()} must be an integer, got {value!r}")
        coerced = int(value)
        if isinstance(value, float) and coerced != value:
            raise ConfigError(f"{name.upper()} must be an integer, got {value!r}")
        return coerced
    if annotation in ('float', float):
        return float(value)
    return value


def write_params_file(config: SimConfig, output_dir: str | Path = '.') -> Path:
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    path = output_dir / f"sim_params{config.simtag}.txt"

    with open(path, 'w') as f:
        for key, value in asdict(config).items():
            f.write(f"{key}={value}\n")

    return path

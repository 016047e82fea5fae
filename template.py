# %%
import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
from pathlib import Path

import numpy as np
from config import SimConfig
from college_model import CollegeModel
from analysis import *
from metrics import *

NUM_SIMULATION_YEARS = 4
SIMTAG = 0

INIT_NUM_PEOPLE = 400
INIT_NUM_GROUPS = 20
NUM_FRESHMEN_ENROLLING_PER_YEAR = 100
NUM_NEW_GROUPS_PER_YEAR = 2

RACE_WEIGHT = 5
PROBABILITY_WHITE = 0.8

FRIENDSHIP_COEFFICIENT = 0.22
FRIENDSHIP_INTERCEPT = 0.05
NUM_TO_MEET_GROUP = 10
NUM_TO_MEET_POP = 5
DECAY_THRESHOLD = 2

DEBUG_LEVEL: DEBUG_LEVELS = 'summary'

SEED = 1

rng = np.random.default_rng(SEED)

config = SimConfig.from_params({
    'NUM_SIMULATION_YEARS': NUM_SIMULATION_YEARS,
    'SIMTAG': SIMTAG,
    'INIT_NUM_PEOPLE': INIT_NUM_PEOPLE,
    'INIT_NUM_GROUPS': INIT_NUM_GROUPS,
    'NUM_FRESHMEN_ENROLLING_PER_YEAR': NUM_FRESHMEN_ENROLLING_PER_YEAR,
    'NUM_NEW_GROUPS_PER_YEAR': NUM_NEW_GROUPS_PER_YEAR,
    'RACE_WEIGHT': RACE_WEIGHT,
    'PROBABILITY_WHITE': PROBABILITY_WHITE,
    'FRIENDSHIP_COEFFICIENT': FRIENDSHIP_COEFFICIENT,
    'FRIENDSHIP_INTERCEPT': FRIENDSHIP_INTERCEPT,
    'NUM_TO_MEET_GROUP': NUM_TO_MEET_GROUP,
    'NUM_TO_MEET_POP': NUM_TO_MEET_POP,
    'DECAY_THRESHOLD': DECAY_THRESHOLD,
    'SEED': SEED,
})

model = CollegeModel(
    config,
    data_collector=DataCollector(DEBUG_LEVEL, n_agents_to_track=3),
    rng=rng,
)

print(f"Running college friendship model")
print(f"  Students: {INIT_NUM_PEOPLE} (+{NUM_FRESHMEN_ENROLLING_PER_YEAR}/year)")
print(f"  Groups: {INIT_NUM_GROUPS} (+{NUM_NEW_GROUPS_PER_YEAR}/year)")
print(f"  Race weight: {RACE_WEIGHT}")
print(f"  Years: {NUM_SIMULATION_YEARS}")
print(f"  Debug level: {DEBUG_LEVEL}")
print(f"  Seed: {SEED}")

model.run()

print("\n" + "="*80)
print("SIMULATION COMPLETE")
print("="*80)

same_race_fraction = calculate_same_race_friendship_fraction(model)
print(f'SAME-RACE FRIENDSHIP FRACTION: {same_race_fraction}')

race_assortativity = calculate_race_assortativity(model)
print(f'RACE ASSORTATIVITY: {race_assortativity}')

script_path = Path(__file__)

plot_friend_counts(
    model.data_collector,
    save_path=script_path.with_suffix(".jpg"),
)

#plot_similarity_distribution(
#    model.data_collector,
#    save_path=script_path.with_name(script_path.stem + "_similarity.jpg"),
#    )
# %%

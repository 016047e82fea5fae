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

# Does weighting race in perceived similarity segregate the friendship network?
RACE_WEIGHTS = [0, 10]

NUM_SIMULATION_YEARS = 8
INIT_NUM_PEOPLE = 500
INIT_NUM_GROUPS = 25
NUM_FRESHMEN_ENROLLING_PER_YEAR = 125
NUM_NEW_GROUPS_PER_YEAR = 3
PROBABILITY_WHITE = 0.7

DEBUG_LEVEL: DEBUG_LEVELS = 'summary'

SEED = 1

script_path = Path(__file__)

for simtag, race_weight in enumerate(RACE_WEIGHTS):
    config = SimConfig.from_params({
        'NUM_SIMULATION_YEARS': NUM_SIMULATION_YEARS,
        'SIMTAG': simtag,
        'RACE_WEIGHT': race_weight,
        'PROBABILITY_WHITE': PROBABILITY_WHITE,
        'INIT_NUM_PEOPLE': INIT_NUM_PEOPLE,
        'INIT_NUM_GROUPS': INIT_NUM_GROUPS,
        'NUM_FRESHMEN_ENROLLING_PER_YEAR': NUM_FRESHMEN_ENROLLING_PER_YEAR,
        'NUM_NEW_GROUPS_PER_YEAR': NUM_NEW_GROUPS_PER_YEAR,
        'SEED': SEED,
    })

    model = CollegeModel(
        config,
        data_collector=DataCollector(DEBUG_LEVEL),
        rng=np.random.default_rng(SEED),
    )
    model.run()

    print(f"\nRACE WEIGHT {race_weight}")
    print(f"  Same-race friendship fraction: {calculate_same_race_friendship_fraction(model):.4f}")
    print(f"  Race assortativity: {calculate_race_assortativity(model):.4f}")
    print(f"  Mean alienation: {calculate_mean_alienation(model):.4f}")

    plot_friend_counts(
        model.data_collector,
        save_path=script_path.with_name(f"{script_path.stem}_rw{race_weight}.jpg"),
        show_plot=False,
    )

    plot_similarity_distribution(
        model.data_collector,
        save_path=script_path.with_name(f"{script_path.stem}_rw{race_weight}_similarity.jpg"),
        show_plot=False,
    )
# %%

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from concurrent.futures import ProcessPoolExecutor, as_completed
from analysis import plot_segregation_heatmaps
from model_runner import run_model
import matplotlib.pyplot as plt
import numpy as np

n_race_weights = 11
n_prob_white = 6

race_weights = np.linspace(0.0, 10.0, n_race_weights)
probs_white = np.linspace(0.5, 1.0, n_prob_white)

def get_base_params():
    return {
        'NUM_SIMULATION_YEARS': 4,
        'SIMTAG': 0,
        'INIT_NUM_PEOPLE': 300,
        'INIT_NUM_GROUPS': 15,
        'NUM_FRESHMEN_ENROLLING_PER_YEAR': 75,
        'NUM_NEW_GROUPS_PER_YEAR': 2,
        'FRIENDSHIP_COEFFICIENT': 0.22,
        'FRIENDSHIP_INTERCEPT': 0.05,
        'DEBUG_LEVEL': 'none',
        'SEED': 1,
    }

if __name__ == '__main__':
    same_race_results = np.zeros((n_prob_white, n_race_weights))
    assortativity_results = np.zeros((n_prob_white, n_race_weights))

    future_to_index = {}

    with ProcessPoolExecutor(max_workers=12) as executor:
        for j, race_weight in enumerate(race_weights):
            for i, prob_white in enumerate(probs_white):
                params = get_base_params()

                params['RACE_WEIGHT'] = race_weight
                params['PROBABILITY_WHITE'] = prob_white
                params['SIMTAG'] = i * n_race_weights + j

                params['run_name'] = f'RW={race_weight:.2f}_PW={prob_white:.2f}'

                future = executor.submit(run_model, params, output_dir='heatmap_experiments', show_plot=False)

                future_to_index[future] = (i, j)

        for future in as_completed(future_to_index):
            i, j = future_to_index[future]
            result = future.result()

            if 'same_race_fraction' not in result.keys() or 'race_assortativity' not in result.keys():
                continue
            else:
                same_race_results[i, j] = result['same_race_fraction']
                assortativity_results[i, j] = result['race_assortativity']

    plot_segregation_heatmaps(same_race_results, assortativity_results,
                              (0.0, 10.0), (0.5, 1.0), 'Race weight', 'Probability white')
    plt.show()

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))

from concurrent.futures import ThreadPoolExecutor, as_completed
from itertools import product

from model_runner import run_model


def get_base_params():
    return {
        'NUM_SIMULATION_YEARS': 4,
        'SIMTAG': 0,
        'TRIAL_NUM': 1,
        'RACE_WEIGHT': 5,
        'PROBABILITY_WHITE': 0.8,
        'INIT_NUM_PEOPLE': 400,
        'INIT_NUM_GROUPS': 20,
        'NUM_FRESHMEN_ENROLLING_PER_YEAR': 100,
        'NUM_NEW_GROUPS_PER_YEAR': 2,
        'FRIENDSHIP_COEFFICIENT': 0.22,
        'FRIENDSHIP_INTERCEPT': 0.05,
        'NUM_TO_MEET_GROUP': 10,
        'NUM_TO_MEET_POP': 5,
        'DECAY_THRESHOLD': 2,
        'DEBUG_LEVEL': 'none',
        'WRITE_CSV': False,
        'SEED': 1,
    }


def generate_parameter_grid():
    grid = {
        'RACE_WEIGHT': [0, 1, 2, 5, 10],
        'PROBABILITY_WHITE': [0.5, 0.65, 0.8],
        'TRIAL_NUM': [1, 2, 3],
    }

    param_combinations = []
    keys = list(grid.keys())
    values = list(grid.values())

    for simtag, combo in enumerate(product(*values)):
        params = get_base_params()

        name_parts = []
        for key, value in zip(keys, combo):
            params[key] = value
            key_short = ''.join([c for c in key if c.isupper() or c.isdigit()])
            name_parts.append(f"{key_short}_{value}")

        params['SIMTAG'] = simtag
        params['SEED'] = params['SEED'] * 1000 + simtag
        params['run_name'] = "_".join(name_parts)
        param_combinations.append(params)

    return param_combinations


def main():
    param_grid = generate_parameter_grid()

    print(f"Starting grid search with {len(param_grid)} parameter combinations")
    print(f"Using 12 threads")
    print("="*80)

    results = []

    with ThreadPoolExecutor(max_workers=12) as executor:
        future_to_params = {executor.submit(run_model, params, show_plot=False): params for params in param_grid}

        for i, future in enumerate(as_completed(future_to_params), 1):
            result = future.result()
            results.append(result)

            if result['status'] == 'success':
                print(f"[{i}/{len(param_grid)}] ✓ {result['run_name']}")
                print(f"    Same-race fraction: {result['same_race_fraction']:.4f}, "
                      f"Assortativity: {result['race_assortativity']:.4f}")
            elif result['status'] == 'skipped':
                print(f"[{i}/{len(param_grid)}] ⊘ {result['run_name']} (skipped - already exists)")
            else:
                print(f"[{i}/{len(param_grid)}] ✗ {result['run_name']}")
                print(f"    Error: {result['error']}")

    print("\n" + "="*80)
    print("GRID SEARCH COMPLETE")
    print("="*80)
    print(f"Successful runs: {sum(1 for r in results if r['status'] == 'success')}/{len(results)}")
    print(f"Skipped runs: {sum(1 for r in results if r['status'] == 'skipped')}/{len(results)}")
    print(f"Failed runs: {sum(1 for r in results if r['status'] == 'error')}/{len(results)}")


if __name__ == '__main__':
    main()

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.dirname(__file__))))
from pathlib import Path
import traceback

import matplotlib.pyplot as plt
import numpy as np

from config import SimConfig, write_params_file
from college_model import CollegeModel
from analysis import CsvEventWriter, DataCollector, plot_friend_counts
from metrics import calculate_mean_alienation, calculate_race_assortativity, calculate_same_race_friendship_fraction


def run_model(params, output_dir='grid_experiments', show_plot=True):
    output_dir = Path(output_dir)
    output_dir.mkdir(exist_ok=True)

    run_name = params['run_name']
    jpg_path = output_dir / f"{run_name}.jpg"
    txt_path = output_dir / f"{run_name}.txt"

    if jpg_path.exists():
        return {
            'run_name': run_name,
            'status': 'skipped',
            'message': 'Already completed'
        }

    try:
        config = SimConfig.from_params(params)
        rng = np.random.default_rng(config.seed)

        writer = None
        if params.get('WRITE_CSV', False):
            run_dir = output_dir / run_name
            write_params_file(config, run_dir)
            writer = CsvEventWriter(run_dir, config.simtag)

        data_collector = DataCollector(
            params.get('DEBUG_LEVEL', 'none'),
            n_agents_to_track=params.get('N_AGENTS_TO_TRACK', 5),
            keep_events=False,
            writer=writer,
        )

        model = CollegeModel(config, data_collector=data_collector, rng=rng)
        model.run()
        data_collector.close()

        same_race_fraction = calculate_same_race_friendship_fraction(model)
        race_assortativity = calculate_race_assortativity(model)
        mean_alienation = calculate_mean_alienation(model)

        plot_friend_counts(
            data_collector,
            save_path=jpg_path,
            show_plot=show_plot
        )

        if not show_plot:
            plt.close('all')

        with open(txt_path, 'w') as f:
            f.write(f"Run: {run_name}\n")
            f.write("="*80 + "\n\n")
            f.write("PARAMETERS:\n")
            for key, value in config.to_params().items():
                f.write(f"  {key}: {value}\n")
            f.write("\nRESULTS:\n")
            f.write(f"  Final population: {len(model.students)}\n")
            f.write(f"  Final friendships: {model.graph.number_of_edges()}\n")
            f.write(f"  Same-race friendship fraction: {same_race_fraction}\n")
            f.write(f"  Race assortativity: {race_assortativity}\n")
            f.write(f"  Mean alienation: {mean_alienation}\n")
            f.write("\nPER YEAR:\n")
            for data in data_collector.year_data:
                f.write(f"  {data.year}: population={data.population} friendships={data.num_friendships} "
                        f"graduates={data.graduates} dropouts={data.dropouts}\n")

        del model

        return {
            'run_name': run_name,
            'status': 'success',
            'same_race_fraction': same_race_fraction,
            'race_assortativity': race_assortativity,
            'mean_alienation': mean_alienation,
        }

    except Exception as e:
        error_trace = traceback.format_exc()
        with open(txt_path, 'w') as f:
            f.write(f"Run: {run_name}\n")
            f.write("="*80 + "\n\n")
            f.write("PARAMETERS:\n")
            for key, value in params.items():
                if key != 'run_name':
                    f.write(f"  {key}: {value}\n")
            f.write("\nERROR:\n")
            f.write(error_trace)

        return {
            'run_name': run_name,
            'status': 'error',
            'error': str(e)
        }

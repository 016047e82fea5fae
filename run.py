import argparse
import logging

from config import ConfigError, SimConfig, write_params_file
from college_model import CollegeModel
from analysis import CsvEventWriter, DataCollector
from metrics import calculate_race_assortativity, calculate_same_race_friendship_fraction


parser = argparse.ArgumentParser(description="Simulate friendship formation on a college campus.")
parser.add_argument("--maxtime", type=int, default=None, help="number of simulated years (required)")
parser.add_argument("--simtag", type=int, default=None, help="tag identifying this run (required)")
parser.add_argument("--raceweight", type=float, default=None)
parser.add_argument("--probwhite", type=float, default=None)
parser.add_argument("--trialnum", type=int, default=None)
parser.add_argument("--seed", type=int, default=None)
parser.add_argument("--initnumpeople", type=int, default=None)
parser.add_argument("--numfreshmenperyear", type=int, default=None)
parser.add_argument("--initnumgroups", type=int, default=None)
parser.add_argument("--numnewgroupsperyear", type=int, default=None)
parser.add_argument("--outputdir", type=str, default=".")
parser.add_argument("--debuglevel", type=str,
                    choices=list(DataCollector.DEBUG_LEVEL_DICT), default="summary")


def params_from_args(args):
    return {
        'NUM_SIMULATION_YEARS': args.maxtime,
        'SIMTAG': args.simtag,
        'RACE_WEIGHT': args.raceweight,
        'PROBABILITY_WHITE': args.probwhite,
        'TRIAL_NUM': args.trialnum,
        'SEED': args.seed,
        'INIT_NUM_PEOPLE': args.initnumpeople,
        'NUM_FRESHMEN_ENROLLING_PER_YEAR': args.numfreshmenperyear,
        'INIT_NUM_GROUPS': args.initnumgroups,
        'NUM_NEW_GROUPS_PER_YEAR': args.numnewgroupsperyear,
    }


def main(argv=None) -> None:
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    try:
        config = SimConfig.from_params(params_from_args(args))
    except ConfigError as e:
        parser.error(str(e))

    params_path = write_params_file(config, args.outputdir)
    print(f"Parameters written to {params_path}")

    data_collector = DataCollector(
        args.debuglevel,
        keep_events=False,
        writer=CsvEventWriter(args.outputdir, config.simtag),
    )
    model = CollegeModel(config, data_collector=data_collector)

    print(f"Running college friendship model")
    print(f"  Students: {config.init_num_people} (+{config.num_freshmen_enrolling_per_year}/year)")
    print(f"  Groups: {config.init_num_groups} (+{config.num_new_groups_per_year}/year)")
    print(f"  Race weight: {config.race_weight}")
    print(f"  Years: {config.num_simulation_years}")
    print(f"  Seed: {config.seed}")

    model.run()
    data_collector.close()

    print("\n" + "="*80)
    print("SIMULATION COMPLETE")
    print("="*80)
    print(f"Same-race friendship fraction: {calculate_same_race_friendship_fraction(model):.4f}")
    print(f"Race assortativity: {calculate_race_assortativity(model):.4f}")


if __name__ == "__main__":
    main()

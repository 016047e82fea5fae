import os
import sys

import matplotlib
matplotlib.use('Agg')
import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from analysis import DataCollector
from college_model import AttributeVector, CollegeModel, Gender, Race, Student
from config import SimConfig


def make_config(**overrides):
    """Small campus, empty unless a test asks for people or groups."""
    params = {
        'NUM_SIMULATION_YEARS': 1,
        'SIMTAG': 0,
        'SEED': 42,
        'INIT_NUM_PEOPLE': 0,
        'INIT_NUM_GROUPS': 0,
        'NUM_FRESHMEN_ENROLLING_PER_YEAR': 0,
        'NUM_NEW_GROUPS_PER_YEAR': 0,
        'INDEPENDENT_ATTRIBUTE_POOL': 4,
        'DEPENDENT_ATTRIBUTE_POOL': 4,
    }
    params.update(overrides)
    return SimConfig.from_params(params)


def add_student(model, race=Race.WHITE, gender=Gender.FEMALE, attributes=None, year=1, extroversion=None):
    student = Student(model, year=year, attributes=attributes, race=race, gender=gender,
                      extroversion=extroversion)
    model.students.append(student)
    model.graph.add_node(student)
    return student


@pytest.fixture
def model():
    return CollegeModel(make_config(), data_collector=DataCollector())


@pytest.fixture
def friendly_model():
    """Everybody who meets becomes friends."""
    return CollegeModel(
        make_config(FRIENDSHIP_COEFFICIENT=0.0, FRIENDSHIP_INTERCEPT=1.0),
        data_collector=DataCollector(),
    )


@pytest.fixture
def unfriendly_model():
    """Nobody who meets becomes friends."""
    return CollegeModel(
        make_config(FRIENDSHIP_COEFFICIENT=0.0, FRIENDSHIP_INTERCEPT=0.0),
        data_collector=DataCollector(),
    )


def same_attributes():
    return AttributeVector([], [0.2, 0.4, 0.6, 0.8], [1.0, 2.0, 3.0, 4.0])

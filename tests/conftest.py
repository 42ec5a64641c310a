"""Shared fixtures: a synthetic dataset and one trained model directory per session."""

from __future__ import annotations

import shutil

import pytest

from categorizer.analyzer import TicketAnalyzer
from categorizer.data.synthetic_generator import write_dataset
from categorizer.lifecycle import ModelLifecycleManager


@pytest.fixture(scope="session")
def dataset_path(tmp_path_factory):
    return write_dataset(tmp_path_factory.mktemp("data") / "tickets.csv")


@pytest.fixture(scope="session")
def trained_model_dir(tmp_path_factory, dataset_path):
    model_dir = tmp_path_factory.mktemp("models")
    assert ModelLifecycleManager(model_dir, train_timeout=0).train(dataset_path)
    return model_dir


@pytest.fixture
def model_dir_copy(tmp_path, trained_model_dir):
    """Writable copy of the trained artifacts for tests that retrain or swap."""
    return shutil.copytree(trained_model_dir, tmp_path / "models")


@pytest.fixture
def manager(trained_model_dir):
    m = ModelLifecycleManager(trained_model_dir, train_timeout=0)
    assert m.load()
    return m


@pytest.fixture
def empty_manager(tmp_path):
    return ModelLifecycleManager(tmp_path / "no-models", train_timeout=0)


@pytest.fixture
def analyzer(manager):
    return TicketAnalyzer(manager)

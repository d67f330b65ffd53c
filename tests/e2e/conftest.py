"""Fixtures for the end-to-end workflow scenarios."""

from __future__ import annotations

import shutil

import pytest

from kubebuilder_e2e.config import load_config, reset_config, set_config
from kubebuilder_e2e.framework import DOCKER, KUBEBUILDER, KUBECTL, run_command_or_die, skipf
from kubebuilder_e2e.plugin import apply_options
from kubebuilder_e2e.utils.system import tool_path


@pytest.fixture(autouse=True)
def _isolated_config(request):
    """Use the config built from file, env and pytest options instead of defaults."""
    set_config(apply_options(load_config(), request.config.option))
    yield
    reset_config()


@pytest.fixture(autouse=True)
def _require_tools(_isolated_config, e2e_config):
    for kind in (KUBECTL, KUBEBUILDER, DOCKER):
        path = tool_path(kind, e2e_config)
        if not shutil.which(path):
            skipf("%s not available, skipping e2e workflow", path)
    if not e2e_config.kubebuilder.project_dir:
        skipf("no project directory configured, pass --project-dir")


@pytest.fixture
def built_images():
    """Images built during a scenario; removed afterwards."""
    images: list[str] = []
    yield images
    for image in images:
        run_command_or_die(DOCKER, "rmi", "-f", image)

"""Общие фикстуры: переменные стека, симулированное облако, backend состояния."""

from pathlib import Path
from typing import Any, Callable, Dict, Tuple

import pytest

from provision.models import BackendConfig, Plan, StackVariables, StateFile
from provision.services import executor
from provision.services.builders.pipeline import build_stack
from provision.services.planner import core as planner
from provision.services.provider import SimulatedCloud
from provision.services.state import LocalStateBackend

GITHUB_TOKEN = "ghp_original_token_value"

BASE_VARIABLES: Dict[str, Any] = {
    "region": "eu-west-1",
    "application_name": "shop",
    "github_user": "octo",
    "github_repository": "shop-service",
    "github_branch": "main",
    "github_token": GITHUB_TOKEN,
    "build_image": "aws/codebuild/standard:7.0",
}


@pytest.fixture
def variables_data() -> Dict[str, Any]:
    return dict(BASE_VARIABLES)


@pytest.fixture
def variables(variables_data: Dict[str, Any]) -> StackVariables:
    return StackVariables(**variables_data)


@pytest.fixture
def cloud() -> SimulatedCloud:
    return SimulatedCloud(region="eu-west-1", account_id="123456789012")


@pytest.fixture
def backend_factory(tmp_path: Path) -> Callable[[StackVariables], LocalStateBackend]:
    """backend_factory(variables) -> LocalStateBackend с ключом <app>/terraform.tfstate"""

    def _make(variables: StackVariables) -> LocalStateBackend:
        config = BackendConfig.for_application("test-state", variables.application_name, variables.region)
        return LocalStateBackend(tmp_path / "state", config)

    return _make


@pytest.fixture
def backend(backend_factory, variables: StackVariables) -> LocalStateBackend:
    return backend_factory(variables)


@pytest.fixture
def plan_stack() -> Callable[..., Plan]:
    """plan_stack(variables, cloud, backend) -> Plan"""

    def _plan(variables: StackVariables, cloud: SimulatedCloud, backend: LocalStateBackend) -> Plan:
        stack, _, _ = build_stack(variables)
        plan, _, _ = planner.plan(stack, backend.read(), cloud)
        return plan

    return _plan


@pytest.fixture
def apply_stack() -> Callable[..., Tuple[Plan, StateFile]]:
    """apply_stack(variables, cloud, backend) -> (Plan, StateFile)"""

    def _apply(
        variables: StackVariables, cloud: SimulatedCloud, backend: LocalStateBackend
    ) -> Tuple[Plan, StateFile]:
        stack, _, _ = build_stack(variables)
        state = backend.read()
        plan, _, _ = planner.plan(stack, state, cloud)
        state, _, _ = executor.apply(plan, stack, state, cloud, backend)
        return plan, state

    return _apply

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from model import StackDefinition

from .animation import run_blocking
from .config import CLOUD_SUBDIR, STATE_SUBDIR, resolve_workdir
from .models import BackendConfig, Plan, ProvisionResponse, ResourceState, StackVariables, StateFile
from .renders import plan as plan_render, terraform_json as terraform_render
from .services.builders import pipeline as builder
from .services.checks import core as checks
from .services.planner import core as planner
from .services import executor
from .services.executor import ApplyError, SecretHandlingError
from .services.graph import GraphError
from .services.provider import Provider, ProviderError, SimulatedCloud
from .services.state import LocalStateBackend, StateError

ConfirmCallback = Callable[[Plan], bool]

ENGINE_ERRORS = (GraphError, StateError, ProviderError, ApplyError, SecretHandlingError)


class Pipe2CloudCore:
    """
    Оркестрация одного стека: построение графа, план, apply, destroy, проверки.

    Все операции копят logs/warnings и возвращают ProvisionResponse;
    ошибки движка превращаются в status="error".
    """

    def __init__(
        self,
        variables: StackVariables,
        backend_config: Optional[BackendConfig] = None,
        provider: Optional[Provider] = None,
        workdir: Optional[Path] = None,
        animate: bool = True,
    ) -> None:
        self.variables = variables
        self.workdir = resolve_workdir(workdir)
        self.backend_config = backend_config or BackendConfig.for_application(
            bucket=f"pipe2cloud-state-{variables.region}",
            application_name=variables.application_name,
            region=variables.region,
        )
        self.backend = LocalStateBackend(self.workdir / STATE_SUBDIR, self.backend_config)
        self.provider: Provider = provider or SimulatedCloud(
            region=variables.region,
            path=self.workdir / CLOUD_SUBDIR / f"{variables.region}.json",
        )
        self.animate = animate
        self.logs: List[str] = []
        self.warnings: List[str] = []
        self.last_plan: Optional[Plan] = None
        self.stack: Optional[StackDefinition] = None

    def _build_stack(self):
        stack, logs, warnings = builder.build_stack(self.variables)
        self.logs.extend(logs)
        self.warnings.extend(w for w in warnings if w not in self.warnings)
        return stack

    def _error(self, e: Any) -> ProvisionResponse:
        self.logs.extend(getattr(e, "logs", []))
        self.warnings.append(getattr(e, "description", str(e)))
        return ProvisionResponse(
            status="error",
            summary=planner.summarize_plan(self.last_plan) if self.last_plan else None,
            warnings=self.warnings,
            logs=self.logs,
        )

    def _plan(self, state: StateFile) -> Plan:
        stack = self._build_stack()
        plan, logs, warnings = planner.plan(stack, state, self.provider)
        self.logs.extend(logs)
        self.warnings.extend(w for w in warnings if w not in self.warnings)
        self.stack = stack
        self.last_plan = plan
        self.logs.append(plan_render.render(plan))
        return plan

    async def plan(self) -> ProvisionResponse:
        try:
            with self.backend.lock("plan"):
                state = self.backend.read()
                plan = self._plan(state)
        except ENGINE_ERRORS as e:
            return self._error(e)

        return ProvisionResponse(
            status="ok",
            summary=planner.summarize_plan(plan),
            outputs=state.outputs,
            warnings=self.warnings,
            logs=self.logs,
        )

    async def apply(self, confirm: Optional[ConfirmCallback] = None) -> ProvisionResponse:
        try:
            with self.backend.lock("apply"):
                state = self.backend.read()
                plan = self._plan(state)

                if not plan.has_changes:
                    self.logs.append("Изменений нет — apply не требуется.")
                elif confirm is not None and not confirm(plan):
                    self.warnings.append("Apply отменён пользователем.")
                else:
                    state, logs, warnings = await run_blocking(
                        executor.apply,
                        plan,
                        self.stack,
                        state,
                        self.provider,
                        self.backend,
                        text="Применение плана",
                        enabled=self.animate,
                    )
                    self.logs.extend(logs)
                    self.warnings.extend(warnings)
        except ENGINE_ERRORS as e:
            return self._error(e)

        return ProvisionResponse(
            status="ok",
            summary=planner.summarize_plan(plan),
            outputs=state.outputs,
            warnings=self.warnings,
            logs=self.logs,
        )

    async def destroy(self, confirm: Optional[ConfirmCallback] = None) -> ProvisionResponse:
        try:
            with self.backend.lock("destroy"):
                state = self.backend.read()
                plan, logs, warnings = planner.plan_destroy(state)
                self.logs.extend(logs)
                self.warnings.extend(warnings)
                self.last_plan = plan
                self.logs.append(plan_render.render(plan))

                if not plan.has_changes:
                    self.logs.append("Состояние пустое — destroy не требуется.")
                elif confirm is not None and not confirm(plan):
                    self.warnings.append("Destroy отменён пользователем.")
                else:
                    state, logs, warnings = await run_blocking(
                        executor.destroy,
                        plan,
                        state,
                        self.provider,
                        self.backend,
                        text="Удаление ресурсов",
                        enabled=self.animate,
                    )
                    self.logs.extend(logs)
                    self.warnings.extend(warnings)
        except ENGINE_ERRORS as e:
            return self._error(e)

        return ProvisionResponse(
            status="ok",
            summary=planner.summarize_plan(plan),
            outputs=state.outputs,
            warnings=self.warnings,
            logs=self.logs,
        )

    def validate(self) -> ProvisionResponse:
        stack = self._build_stack()
        logs, warnings, violations = checks.check_stack(stack, self.variables)
        self.logs.extend(logs)
        self.warnings.extend(w for w in warnings if w not in self.warnings)

        return ProvisionResponse(
            status="error" if violations else "ok",
            summary=builder.summarize_stack(stack),
            violations=violations,
            warnings=self.warnings,
            logs=self.logs,
        )

    def render(self) -> str:
        stack = self._build_stack()
        return terraform_render.render(stack, self.variables, self.backend_config)

    def outputs(self) -> Dict[str, Any]:
        return self.backend.read().outputs

    def state_resources(self) -> Dict[str, ResourceState]:
        return self.backend.read().resources

    def force_unlock(self, lock_id: Optional[str] = None) -> bool:
        return self.backend.force_unlock(lock_id)

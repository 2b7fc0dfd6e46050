"""
Compile runner - top-level orchestration: source tree + cache -> slug.

This module sequences layout decision, cache restore, virtualenv
creation, dependency installation, hooks, relocation, cache persistence and
the runtime profile into a single ``run_compile`` function that the CLI (or
a test) calls.

States advance strictly in order:

    INIT -> LAYOUT_DECIDED -> CACHE_RESTORED -> ENV_READY -> DEPS_INSTALLED
         -> FINALIZED -> CACHE_PERSISTED -> DONE

Any BuildFailed moves the receipt to FAILED and propagates. The cache is
only written after FINALIZED, so a failed build never stores a half-built
virtualenv.
"""
from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Mapping

from python_buildpack.config import BuildSettings, load_settings
from python_buildpack.core.cache_store import CacheStore
from python_buildpack.core.context import BuildContext, sanitized_env
from python_buildpack.core.detect import detect
from python_buildpack.core.environment import (
    EnvironmentManager,
    EnvironmentTool,
    VirtualenvTool,
)
from python_buildpack.core.hooks import HookDispatcher
from python_buildpack.core.installer import DependencyInstaller
from python_buildpack.core.layout import decide_layout
from python_buildpack.core.procs import CommandRunner
from python_buildpack.io.profile_script import ProfileScript, write_runtime_profile
from python_buildpack.io.schema import BuildReceipt, BuildState, BuildStatus
from python_buildpack.policy.failures import BuildFailed
from python_buildpack.policy.profile import BuildProfile

logger = logging.getLogger(__name__)

Detector = Callable[[Path], str | None]


def _advance(receipt: BuildReceipt, state: BuildState) -> None:
    logger.debug("state -> %s", state.value)
    receipt.states.append(state)


def run_compile(
    build_dir: Path,
    cache_dir: Path,
    settings: BuildSettings | None = None,
    profile: BuildProfile | None = None,
    runner: CommandRunner | None = None,
    env_tool: EnvironmentTool | None = None,
    hooks: HookDispatcher | None = None,
    detector: Detector = detect,
    base_env: Mapping[str, str] | None = None,
) -> BuildReceipt:
    """
    Compile ``build_dir`` in place, reusing and then refreshing ``cache_dir``.

    Parameters
    ----------
    build_dir : Path
        Application source tree; mutated in place into the slug.
    cache_dir : Path
        Persistent cache carried between builds of the same app.
    settings, profile : optional
        Environment overrides and pipeline constants. Default to the process
        environment and ``BuildProfile.v1()``.
    runner, env_tool, hooks, detector : optional
        Collaborators; the defaults run real ``virtualenv`` / ``pip`` and the
        scripts in the buildpack's ``hooks/`` directory.
    base_env : Mapping, optional
        Environment the build starts from. Defaults to ``os.environ``.

    Returns
    -------
    BuildReceipt with status SUCCESS. Failures raise BuildFailed carrying
    the FAILED receipt on ``.receipt``.
    """
    settings = settings or load_settings()
    profile = profile or BuildProfile.v1()
    runner = runner or CommandRunner()
    env_tool = env_tool or VirtualenvTool(runner, command=settings.VIRTUALENV_COMMAND)
    hooks = hooks or HookDispatcher.from_directory(settings.hooks_dir, runner)

    build_dir = Path(build_dir).resolve()
    cache_dir = Path(cache_dir).resolve()

    context = BuildContext(
        build_dir=build_dir,
        cache_dir=cache_dir,
        settings=settings,
        profile=profile,
        env=sanitized_env(os.environ if base_env is None else base_env, profile),
        app_kind=detector(build_dir),
    )
    if settings.DISABLE_INJECTION:
        context.env["DISABLE_INJECTION"] = settings.DISABLE_INJECTION

    receipt = BuildReceipt(
        profile_id=profile.profile_id,
        build_dir=str(build_dir),
        cache_dir=str(cache_dir),
        app_kind=context.app_kind,
        force_rebuild=settings.force_rebuild,
    )
    _advance(receipt, BuildState.INIT)

    try:
        # ── Step 1: pre-compile hook ─────────────────────────────────────
        hooks.run_pre_compile(context)

        # ── Step 2: layout decision (before any cache read) ──────────────
        context.layout = decide_layout(build_dir, cache_dir, profile)
        receipt.layout = context.layout.kind.value
        _advance(receipt, BuildState.LAYOUT_DECIDED)

        # ── Step 3: cache restore ────────────────────────────────────────
        cache_dir.mkdir(parents=True, exist_ok=True)
        cache = CacheStore(cache_dir, build_dir)
        context.fresh_cache = cache.is_empty()
        receipt.fresh_cache = context.fresh_cache
        receipt.restored = cache.restore(context.layout.cache_names)
        _advance(receipt, BuildState.CACHE_RESTORED)

        (build_dir / profile.scratch_dir).mkdir(parents=True, exist_ok=True)
        context.profile_script_path.parent.mkdir(parents=True, exist_ok=True)

        # ── Step 4: virtualenv ───────────────────────────────────────────
        logger.info("Preparing Python interpreter (%s)", profile.interpreter)
        manager = EnvironmentManager(
            env_tool,
            build_dir,
            context.layout,
            context.env,
            force_rebuild=settings.force_rebuild,
        )
        environment = manager.ensure(context.env_root, profile.interpreter)
        receipt.env_rebuilt = environment.rebuilt
        _advance(receipt, BuildState.ENV_READY)

        # ── Step 5: dependencies ─────────────────────────────────────────
        logger.info("Activating virtualenv")
        context.env = environment.activate(context.env)
        installer = DependencyInstaller(
            runner, build_dir, profile, download_cache=settings.download_cache
        )
        installer.install(environment, context.env)
        receipt.vcs_clients = list(installer.vcs_clients)
        _advance(receipt, BuildState.DEPS_INSTALLED)

        # ── Step 6: framework + post-compile hooks ───────────────────────
        receipt.framework_hook_ran = hooks.run_framework(context)
        hooks.run_post_compile(context)

        # ── Step 7: relocation ───────────────────────────────────────────
        manager.finalize(environment)
        _advance(receipt, BuildState.FINALIZED)

        # ── Step 8: cache persist ────────────────────────────────────────
        receipt.persisted = cache.persist(context.layout.cache_names)
        _advance(receipt, BuildState.CACHE_PERSISTED)

        # ── Step 9: runtime profile ──────────────────────────────────────
        write_runtime_profile(
            ProfileScript(context.profile_script_path),
            context.layout,
            profile,
            python_home=environment.python_home,
        )
        _advance(receipt, BuildState.DONE)

    except BuildFailed as e:
        _advance(receipt, BuildState.FAILED)
        receipt.status = BuildStatus.FAILED
        receipt.failure_reason = e.reason.value
        receipt.failure_message = e.message
        receipt.finished_at = datetime.now(timezone.utc)
        e.receipt = receipt
        raise

    receipt.status = BuildStatus.SUCCESS
    receipt.finished_at = datetime.now(timezone.utc)
    return receipt

"""Gatekeeper-AI.

An assistant runtime that plans multi-step changes to a user's project and
carries them out while a human stays in control of anything risky.

High-level architecture
-----------------------

Every request flows through a risk-gated pipeline:

- **PLAN**: one untrusted completion call turns the task into an
  ``ExecutionPlan`` (strictly parsed, with a safe single-step fallback).
- **PROPOSE**: the plan is rendered for the operator.
- **APPROVE**: the ``ApprovalEngine`` applies the approval policy and, when
  needed, asks the operator interactively.
- **EXECUTE**: a workspace checkpoint is taken, then every tool call runs
  through the ``SandboxedExecutor``.
- **VERIFY** / **EXPLAIN**: the outcome is checked and summarized.

Core subpackages
----------------

- ``gatekeeper_ai.agent_core``: the pipeline, policy, sandbox, checkpoints,
  tools and persistence.
- ``gatekeeper_ai.core``: settings and logging configuration.

Most integrations should use ``gatekeeper_ai.agent_core.service.AgentService``
built by ``gatekeeper_ai.agent_core.factory.build_service_from_settings``.
"""

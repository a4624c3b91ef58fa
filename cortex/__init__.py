"""cortex - task scheduling, dependency and progress-rollup engine."""

"""Bundled example routines."""

from habitflow.data.sample_flow import SAMPLE_FLOW_NAME, sample_flow

__all__ = ["SAMPLE_FLOW_NAME", "sample_flow"]

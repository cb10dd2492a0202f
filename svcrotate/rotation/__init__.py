"""Rotation — orchestrator, convergence watcher, role classifier, run models."""

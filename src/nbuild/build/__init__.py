"""
Build system components for nbuild.

- toolchain_environment: compiler selection, flags and output directories
- build_invoker: runs the external native build
- artifact_stager: exposes the compiled library and its classifier
- build_graph: dependency wiring between the native build and its consumers
- orchestrator: runs the whole native build step
"""

"""
Script: earthly_ci package
What: Holds the Python workflow helpers behind the Earthly build action.
Doing: Groups CLI entrypoints and shared utility code in one importable package.
Why: Keeps context detection and flag construction readable and testable.
Goal: Provide one maintainable home for provisioning and running Earthly in CI.
"""

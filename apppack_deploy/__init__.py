"""
Script: apppack_deploy package
What: Holds the Python deploy step that pushes an app image and starts its AppPack build.
Doing: Groups the CLI entrypoint, one module per deploy step, and shared utility code.
Why: Keeps each step of the deploy readable and testable on its own.
Goal: Provide a clear, maintainable home for the artifact, image, and build orchestration logic.
"""

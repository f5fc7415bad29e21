"""
Route groups live under this package, one per functional domain.

Each group owns its models and routes and receives the shared database
handle and token issuer through its constructor. Groups expose a single
`register(bp)` entry point; mounting under a prefix is the composer's job.
"""

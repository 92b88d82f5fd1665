"""
Infrastructure layer package.

Network probes, SQL connect validation, configuration files and logging.
"""

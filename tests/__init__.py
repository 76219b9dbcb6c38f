"""stream-splitter test suite.

Test organization:
- unit/test_scanner.py: value scanning, delimiter detection, scan limit
- unit/test_splitter.py: chunk accumulation, sequence numbers, start/stop
- unit/test_rate_limiter.py: token bucket and rate-limited scanning
- unit/test_config.py, unit/test_env.py: settings, YAML and environment
- unit/test_handlers.py: flush handlers and chunk files
- unit/test_errors.py, unit/test_observability.py: errors and logging
- unit/test_cli.py: command-line interface
"""

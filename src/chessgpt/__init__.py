"""
ChessGPT move arbitration package.

Components:
- arbiter: validates the request and picks exactly one legal move per call
- engine_gateway: FIFO access to the single shared UCI engine process
- llm_opponent/llm_client/prompting: sampled model moves via OpenAI chat completions
- random_opponent: uniform random legal move, used directly and as fallback
- move_validator/rules: untrusted-text sanitizing and the python-chess rules oracle
- server/runtime/cli: Flask API, background event loop, command line entry points
"""
# Package exports are intentionally minimal; import modules directly as needed.

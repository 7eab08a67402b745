"""
Chroniques de Valthera — Entry Point

Thin wrapper that delegates to bot/client.py. Kept outside the bot/
package so running it as a script never shadows the package itself.

To run: valthera-bot            (after pip install -e .)
   or:  python -m bot.client
   or:  python orchestration/main.py
"""

from bot.client import run

if __name__ == "__main__":
    run()

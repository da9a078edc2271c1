import os
import sys
import asyncio

# Agregar el path para importar módulos
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "../")))

from libs.config.config_variables import LEDGER_DATABASE_PATH
from libs.database.key_value_store import SQLiteKeyValueStore
from libs.database.rate_limit_ledger import RateLimitLedger

from modules.feed_monitor.app_state import AppState
from modules.feed_monitor.refresh_scheduler import RefreshScheduler
from modules.view_state.derived_view import DerivedViewState, ViewParams

# Duración de la sesión de monitoreo
RUN_SECONDS = 35

# Filtros de la vista
MIN_MAGNITUDE = 2.5


async def main():
    state = AppState()
    ledger = RateLimitLedger(SQLiteKeyValueStore(LEDGER_DATABASE_PATH))
    view = DerivedViewState(
        state, ViewParams(min_magnitude=MIN_MAGNITUDE, color_field="depth")
    )

    state.subscribe(
        lambda topic, value: print(f"[{topic}] {value}")
        if topic == AppState.RATE_LIMIT
        else None
    )

    scheduler = RefreshScheduler(state, ledger)
    async with scheduler:
        await asyncio.sleep(RUN_SECONDS)
        await scheduler.refresh_now()

    scheduler.metadata
    view.metadata
    state.close()


if __name__ == "__main__":
    asyncio.run(main())

import asyncio
import logging
import platform
import signal
import sys

from room_monitor.config import ROOMS
from room_monitor.models import Room
from room_monitor.monitor import RoomMonitor

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
    handlers=[logging.StreamHandler(sys.stdout)],
)
log = logging.getLogger("main")


async def main() -> None:
    monitor = RoomMonitor([Room.from_dict(room) for room in ROOMS])
    loop    = asyncio.get_running_loop()

    if platform.system() != "Windows":

        def _shutdown(sig: signal.Signals) -> None:
            log.info("Received %s, shutting down gracefully...", sig.name)
            monitor.stop()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _shutdown, sig)

        # kill -USR1 <pid> asks for an immediate refresh
        loop.add_signal_handler(signal.SIGUSR1, monitor.manual_refresh)

        try:
            await monitor.run()
        except asyncio.CancelledError:
            log.info("Monitor stopped.")

    else:
        try:
            await monitor.run()
        except (asyncio.CancelledError, KeyboardInterrupt):
            log.info("Shutting down...")
            monitor.stop()
            log.info("Monitor stopped.")


if __name__ == "__main__":
    asyncio.run(main())

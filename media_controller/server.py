"""
Media Controller - Main Server Module

This module contains the MediaControllerServer class that wires the bus
adapters, the state store, the dispatcher and the web server together and
manages the application lifecycle.
"""

from __future__ import annotations

import asyncio
import logging
import signal

from media_controller.config import Settings
from media_controller.dispatcher import CommandDispatcher
from media_controller.mixer import MixerGateway
from media_controller.mpris.client import MprisClient
from media_controller.mpris.publisher import MprisPublisher
from media_controller.player.resolver import PlayerResolver
from media_controller.player.state import StateStore
from media_controller.web.server import WebServer

logger = logging.getLogger(__name__)


class MediaControllerServer:
    """
    Coordinates all Media Controller components.

    The server manages:
    - MPRIS publisher: our own player on the session bus
    - MPRIS client: discovery and control of external players
    - State store: the one shared ApplicationState
    - Command dispatcher: per-request orchestration
    - Web server: authenticated REST API
    """

    def __init__(
        self,
        settings: Settings,
        *,
        client: MprisClient | None = None,
        publisher: MprisPublisher | None = None,
        mixer: MixerGateway | None = None,
    ) -> None:
        """
        Initialize the server.

        Args:
            settings: Loaded, immutable settings.
            client: Optional bus client (a session-bus client by default).
            publisher: Optional publisher (registered under settings.bus_name by default).
            mixer: Optional mixer gateway.
        """
        self.settings = settings

        self.publisher = publisher or MprisPublisher(
            name=settings.bus_name,
            identity=settings.player_name,
        )
        self.client = client or MprisClient(timeout=settings.call_timeout)
        self.mixer = mixer or MixerGateway(
            settings.mixer_command,
            settings.mixer_sink,
            timeout=settings.call_timeout,
        )

        self.state = StateStore(self.publisher)

        # Our own published name is the constant the resolver filters out
        self.resolver = PlayerResolver(
            self.client,
            settings.preferred_player,
            exclude_bus_names={self.publisher.bus_name},
        )

        self.dispatcher = CommandDispatcher(
            self.client,
            self.mixer,
            self.state,
            self.resolver,
            seek_seconds=settings.seek_seconds,
            volume_step=settings.volume_step,
        )

        self.web_server: WebServer | None = None

        # Server state
        self._running = False
        self._shutdown_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Start all server components."""
        logger.info("Starting Media Controller (%r)", self.settings)

        self._running = True
        self._shutdown_event = asyncio.Event()

        # Publish ourselves first; failure here is fatal
        await self.publisher.register()
        await self.state.publish_all()
        self.publisher.command_handler = self.dispatcher.handle_bus_command

        await self.client.connect()

        self.web_server = WebServer(self.dispatcher, self.settings.api_token)
        await self.web_server.start(host=self.settings.host, port=self.settings.port)

        logger.info("Media Controller started successfully")

    async def stop(self) -> None:
        """Stop all server components gracefully."""
        if not self._running:
            return

        logger.info("Stopping Media Controller...")
        self._running = False

        # Stop Web server first so no new commands arrive
        if self.web_server:
            await self.web_server.stop()

        self.publisher.command_handler = None
        await self.publisher.close()
        self.client.disconnect()

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("Media Controller stopped")

    async def run(self) -> None:
        """
        Run the server until shutdown is requested.

        This method starts all components and waits for a shutdown signal
        (SIGINT or SIGTERM).
        """
        try:
            await self.start()
        except BaseException:
            await self.stop()
            raise

        # Set up signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            if self._shutdown_event:
                self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, handle_signal)

        # Wait for shutdown
        if self._shutdown_event:
            await self._shutdown_event.wait()

        await self.stop()

    @property
    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

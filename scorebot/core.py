#!/usr/bin/env python3
"""
Core MeshCore Scoreboard Bot functionality
Contains the main bot class: config, logging, connection and module wiring
"""

import asyncio
import configparser
import logging
import time
from pathlib import Path
from typing import Optional

import colorlog
import meshcore
from meshcore import EventType

from .rate_limiter import RateLimiter, BotTxRateLimiter, PerUserRateLimiter
from .message_handler import MessageHandler
from .command_manager import CommandManager
from .channel_manager import ChannelManager

LOGGER_NAME = 'ScoreBot'

MESHCORE_LOGGERS = (
    'meshcore',
    'meshcore_cli',
    'meshcore.meshcore',
    'meshcore_cli.meshcore_cli',
)

DEFAULT_CONFIG = """[Connection]
# Connection type: serial, ble, or tcp
connection_type = serial

# Serial port (for serial connection)
# Common ports: /dev/ttyUSB0, /dev/tty.usbserial-*, COM3 (Windows)
serial_port = /dev/ttyUSB0

# BLE device name (for BLE connection); leave commented out for auto-detection
#ble_device_name = MeshCore

# TCP hostname and port (for TCP connection)
#hostname = 192.168.1.60
#tcp_port = 5000

# Connection timeout in seconds
timeout = 30

[Bot]
# Bot name; channel replies are prefixed with it by the radio
bot_name = ScoreBot

# true: respond to commands, false: only listen and log
enabled = true

# Minimum seconds between replies (global)
rate_limit_seconds = 10

# Minimum seconds between any two transmissions
bot_tx_rate_limit_seconds = 1.0

# Minimum seconds between replies to the same user
per_user_rate_limit_seconds = 5.0

# Delay before each transmission in milliseconds
tx_delay_ms = 250

# Number of channel slots to scan on the node
max_channels = 40

# Optional prefix commands must start with (e.g. !). Empty accepts bare keywords
command_prefix =

[Channels]
# Channels the bot answers in (comma separated, quotes optional)
monitor_channels = "#sports"

# Answer direct messages
respond_to_dms = true

[Banned_Users]
# Senders to ignore (prefix match, comma separated)
banned_users =

[Logging]
# DEBUG, INFO, WARNING, ERROR, CRITICAL
log_level = INFO

# Leave empty for console logging only
log_file = scorebot.log

colored_output = true

# Log level for the meshcore libraries
meshcore_log_level = INFO

[League_Command]
enabled = true

# League shortcuts to answer (nfl, nba, nhl, mlb, mls, epl, f1)
leagues = nfl,nba,nhl,mlb,mls,epl,f1

# Days ahead of tomorrow to search for games
lookahead_days = 14

# Games that started this many hours ago still count as recent
recent_window_hours = 18

# An upcoming game stays featured this many minutes after its start time
upcoming_grace_minutes = 5

# ESPN request timeout in seconds (0 = library default)
request_timeout = 0

# Maximum number of messages used for the game list
list_messages = 2

# Timezone used to display kickoff times
timezone = UTC

[Help_Command]
enabled = true
"""


class ScoreBot:
    """MeshCore scoreboard bot using the official meshcore package.

    Owns configuration, logging, the node connection and the modules that
    process messages.
    """

    def __init__(self, config_file: str = "config.ini"):
        self.config_file = config_file
        self.config = configparser.ConfigParser()
        self.load_config()

        self.setup_logging()

        # Connection
        self.meshcore = None
        self.connected = False
        self.connection_time: Optional[float] = None  # Skip messages cached before this

        self.start_time = time.time()

        self.rate_limiter = RateLimiter(
            self.config.getint('Bot', 'rate_limit_seconds', fallback=10)
        )
        self.bot_tx_rate_limiter = BotTxRateLimiter(
            self.config.getfloat('Bot', 'bot_tx_rate_limit_seconds', fallback=1.0)
        )
        self.per_user_rate_limiter = PerUserRateLimiter(
            seconds=self.config.getfloat('Bot', 'per_user_rate_limit_seconds', fallback=5.0),
            max_entries=1000
        )
        self.tx_delay_ms = self.config.getint('Bot', 'tx_delay_ms', fallback=250)

        max_channels = self.config.getint('Bot', 'max_channels', fallback=40)
        self.channel_manager = ChannelManager(self, max_channels=max_channels)
        self.message_handler = MessageHandler(self)
        self.command_manager = CommandManager(self)

        self._shutdown_event = asyncio.Event()

    @property
    def bot_root(self) -> Path:
        """Get bot root directory (where config.ini is located)"""
        return Path(self.config_file).parent.resolve()

    def load_config(self) -> None:
        """Load configuration from file, writing the default config first when it is missing"""
        if not Path(self.config_file).exists():
            self.create_default_config()

        self.config.read(self.config_file, encoding="utf-8")

    def create_default_config(self) -> None:
        """Write a commented default config.ini"""
        with open(self.config_file, 'w', encoding='utf-8') as f:
            f.write(DEFAULT_CONFIG)
        print(f"Created default config file: {self.config_file}")

    def setup_logging(self) -> None:
        """Setup logging configuration.

        Console handler plus an optional file handler on the 'ScoreBot' logger,
        colored with colorlog unless disabled. The meshcore library loggers get
        their own level. Without a [Logging] section, logs go to the console only.
        """
        if self.config.has_section('Logging'):
            log_level = getattr(logging, self.config.get('Logging', 'log_level', fallback='INFO').upper(), logging.INFO)
            colored_output = self.config.getboolean('Logging', 'colored_output', fallback=True)
            log_file = self.config.get('Logging', 'log_file', fallback='scorebot.log')
            meshcore_log_level = getattr(
                logging, self.config.get('Logging', 'meshcore_log_level', fallback='INFO').upper(), logging.INFO
            )
        else:
            log_level = logging.INFO
            colored_output = True
            log_file = ''
            meshcore_log_level = logging.INFO

        if colored_output:
            formatter = colorlog.ColoredFormatter(
                '%(log_color)s%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S',
                log_colors={
                    'DEBUG': 'cyan',
                    'INFO': 'green',
                    'WARNING': 'yellow',
                    'ERROR': 'red',
                    'CRITICAL': 'red,bg_white',
                }
            )
        else:
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )

        self.logger = logging.getLogger(LOGGER_NAME)
        self.logger.setLevel(log_level)
        self.logger.handlers.clear()

        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        self.logger.addHandler(console_handler)

        log_file = log_file.strip() if log_file else ''
        if not log_file:
            self.logger.info("No log file specified, using console logging only")
        else:
            log_path = Path(log_file)
            if not log_path.is_absolute():
                log_path = self.bot_root / log_path
            try:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                file_handler = logging.FileHandler(log_path, encoding='utf-8')
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)
            except OSError as e:
                self.logger.warning(f"Could not open log file {log_path}: {e}. Using console logging only.")

        # Prevent propagation to root logger to avoid duplicate output
        self.logger.propagate = False

        for logger_name in MESHCORE_LOGGERS:
            library_logger = logging.getLogger(logger_name)
            library_logger.setLevel(meshcore_log_level)
            library_logger.handlers.clear()
            handler = logging.StreamHandler()
            handler.setFormatter(formatter)
            library_logger.addHandler(handler)
            library_logger.propagate = False

        self.logger.info(f"Logging configured - Bot: {logging.getLevelName(log_level)}, "
                         f"MeshCore: {logging.getLevelName(meshcore_log_level)}")

    async def connect(self) -> bool:
        """Connect to the MeshCore node via serial, TCP or BLE (from [Connection])"""
        try:
            self.logger.info("Connecting to MeshCore node...")

            connection_type = self.config.get('Connection', 'connection_type', fallback='serial').lower()
            timeout = self.config.getfloat('Connection', 'timeout', fallback=30)
            self.logger.info(f"Using connection type: {connection_type}")

            if connection_type == 'serial':
                serial_port = self.config.get('Connection', 'serial_port', fallback='/dev/ttyUSB0')
                self.logger.info(f"Connecting via serial port: {serial_port}")
                self.meshcore = await asyncio.wait_for(
                    meshcore.MeshCore.create_serial(serial_port, debug=False), timeout=timeout
                )
            elif connection_type == 'tcp':
                hostname = self.config.get('Connection', 'hostname', fallback=None)
                tcp_port = self.config.getint('Connection', 'tcp_port', fallback=5000)
                if not hostname:
                    self.logger.error("TCP connection requires 'hostname' to be set in config")
                    return False
                self.logger.info(f"Connecting via TCP: {hostname}:{tcp_port}")
                self.meshcore = await asyncio.wait_for(
                    meshcore.MeshCore.create_tcp(hostname, tcp_port, debug=False), timeout=timeout
                )
            else:
                ble_device_name = self.config.get('Connection', 'ble_device_name', fallback=None)
                self.logger.info("Connecting via BLE" + (f" to device: {ble_device_name}" if ble_device_name else ""))
                self.meshcore = await asyncio.wait_for(
                    meshcore.MeshCore.create_ble(ble_device_name, debug=False), timeout=timeout
                )

            if not self.meshcore or not self.meshcore.is_connected:
                self.logger.error("Failed to connect to MeshCore node")
                return False

            self.connected = True
            self.connection_time = time.time()
            self.logger.info(f"Connected to: {self.meshcore.self_info} at {self.connection_time}")

            await self.load_contacts()
            await self.channel_manager.fetch_channels()
            await self.setup_message_handlers()
            return True

        except (OSError, ConnectionError, asyncio.TimeoutError, ValueError, AttributeError) as e:
            self.logger.error(f"Connection failed: {e}")
            return False

    async def load_contacts(self) -> None:
        """Load the contact list; DM replies look up recipients by name"""
        self.logger.info("Loading contacts...")
        try:
            result = await self.meshcore.commands.get_contacts()
        except (OSError, AttributeError, ValueError, asyncio.TimeoutError) as e:
            self.logger.warning(f"Error loading contacts: {e}")
            return
        if result is not None and result.type == EventType.ERROR:
            self.logger.warning(f"Error loading contacts: {result.payload}")
            return
        self.logger.info(f"Contacts loaded: {len(getattr(self.meshcore, 'contacts', None) or {})} contacts")

    async def setup_message_handlers(self) -> None:
        """Subscribe to DM and channel message events and start fetching messages"""
        async def on_contact_message(event, metadata=None):
            await self.message_handler.handle_contact_message(event, metadata)

        async def on_channel_message(event, metadata=None):
            await self.message_handler.handle_channel_message(event, metadata)

        self.meshcore.subscribe(EventType.CONTACT_MSG_RECV, on_contact_message)
        self.meshcore.subscribe(EventType.CHANNEL_MSG_RECV, on_channel_message)

        await self.meshcore.start_auto_message_fetching()
        self.logger.info("Message handlers setup complete")

    def request_shutdown(self) -> None:
        self._shutdown_event.set()

    async def start(self) -> None:
        """Connect and keep running until shutdown is requested or the connection drops"""
        self.logger.info("Starting MeshCore Scoreboard Bot...")

        if not await self.connect():
            self.logger.error("Failed to connect to MeshCore node")
            return

        self.logger.info("Bot is running. Press Ctrl+C to stop.")
        try:
            while self.connected and not self._shutdown_event.is_set():
                try:
                    await asyncio.wait_for(self._shutdown_event.wait(), timeout=5)
                except asyncio.TimeoutError:
                    if self.meshcore and not self.meshcore.is_connected:
                        self.logger.warning("Lost connection to MeshCore node")
                        self.connected = False
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Disconnect from the node. Safe to call more than once."""
        self.logger.info("Stopping MeshCore Scoreboard Bot...")
        self.connected = False

        if self.meshcore:
            meshcore_instance, self.meshcore = self.meshcore, None
            await meshcore_instance.disconnect()

        self.logger.info("Bot stopped")

"""UBC125XLT scanner emulator.

Provides an in-process emulator implementing the ``ByteStream`` protocol, so
the connection, scheduler and controller can be exercised without hardware.
The emulator answers the subset of the remote command set used by the
client, with the response shapes observed from a real UBC125XLT:

- ``MDL``, ``VER``, ``VOL[,n]``, ``SQL[,n]``
- ``PRG`` / ``EPG`` (enter / leave program mode)
- ``KEY,S,P`` / ``KEY,H,P``
- ``GLG`` (live scan status, outside program mode)
- ``CIN,n`` / ``CIN,n,name,freq,mod,...`` / ``DCH,n`` (program mode only)
- ``SCG`` / ``SCG,mask`` (program mode only)

Commands that need program mode answer ``<MNEMONIC>,NG`` outside it;
unknown commands answer ``ERR``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from ubc125.types import BANK_COUNT, CHANNEL_COUNT, bank_of

_EMPTY_FREQUENCY = "00000000"


@dataclass
class _ChannelState:
    name: str = ""
    frequency: str = _EMPTY_FREQUENCY
    modulation: str = "AUTO"
    delay: str = "2"
    lockout: str = "0"
    priority: str = "0"


@dataclass(frozen=True)
class ScannerEmulatorConfig:
    """Configuration for a scanner emulator instance.

    Args:
        model: ``MDL`` response value.
        version: ``VER`` response value.
        volume: Initial volume level (0-15).
        squelch: Initial squelch level (0-15).
    """

    model: str = "UBC125XLT"
    version: str = "Version 1.00.06"
    volume: int = 5
    squelch: int = 2

    def __post_init__(self) -> None:
        if not self.model:
            raise ValueError("model must be non-empty")
        if not 0 <= self.volume <= 15:
            raise ValueError("volume must be 0-15")
        if not 0 <= self.squelch <= 15:
            raise ValueError("squelch must be 0-15")


class ScannerEmulator:
    """In-process UBC125XLT emulator implementing ``ByteStream``.

    Written bytes are split on ``\\r``; each complete command is answered
    immediately and its response, terminated by ``\\r``, is buffered for
    :meth:`read`. Reads return an empty chunk when nothing is buffered, which
    the connection treats like a serial poll timeout.

    Args:
        config: Emulator configuration.
    """

    def __init__(self, config: ScannerEmulatorConfig | None = None) -> None:
        self._config = config or ScannerEmulatorConfig()
        self._volume = self._config.volume
        self._squelch = self._config.squelch
        self._program_mode = False
        self._scanning = True
        self._channels: dict[int, _ChannelState] = {}
        self._bank_disabled = [False] * BANK_COUNT
        self._receiving: int | None = None
        self._silent: set[str] = set()
        self._malformed_channels: set[int] = set()
        self._input = bytearray()
        self._output = bytearray()
        self.received: list[str] = []

        self._handlers: dict[str, Callable[[list[str]], str]] = {
            "MDL": lambda _: f"MDL,{self._config.model}",
            "VER": lambda _: f"VER,{self._config.version}",
            "VOL": self._volume_command,
            "SQL": self._squelch_command,
            "PRG": self._enter_program,
            "EPG": self._exit_program,
            "KEY": self._key,
            "GLG": self._live_status,
            "CIN": self._channel_info,
            "DCH": self._delete_channel,
            "SCG": self._bank_mask,
        }

    # -- Byte stream interface -----------------------------------------------

    def write(self, data: bytes) -> int:
        """Accept command bytes, answering every complete command."""
        self._input.extend(data)
        while b"\r" in self._input:
            line, _, rest = bytes(self._input).partition(b"\r")
            self._input = bytearray(rest)
            command = line.decode("ascii").strip()
            if command:
                self._process(command)
        return len(data)

    def read(self, size: int = 1) -> bytes:
        """Return up to *size* buffered response bytes."""
        chunk = bytes(self._output[:size])
        del self._output[:size]
        return chunk

    def close(self) -> None:
        """Close the emulator (no-op for in-process stream)."""

    # -- Test helpers --------------------------------------------------------

    @property
    def program_mode(self) -> bool:
        """True while the emulated scanner is in program mode."""
        return self._program_mode

    @property
    def scanning(self) -> bool:
        """True while the emulated scanner is scanning (not holding)."""
        return self._scanning

    def set_channel(self, index: int, name: str, frequency: str, modulation: str = "AM") -> None:
        """Program a channel directly.

        Args:
            index: Channel slot (1-500).
            name: Channel name.
            frequency: 8-digit frequency code.
            modulation: Modulation code.
        """
        self._channels[self._check_index(index)] = _ChannelState(
            name=name, frequency=frequency, modulation=modulation
        )

    def channel_fields(self, index: int) -> tuple[str, str, str]:
        """Return ``(name, frequency code, modulation)`` stored for *index*."""
        ch = self._channels.get(self._check_index(index), _ChannelState())
        return ch.name, ch.frequency, ch.modulation

    def set_receiving(self, index: int | None) -> None:
        """Make the live status report reception on channel *index*."""
        self._receiving = None if index is None else self._check_index(index)

    def bank_enabled(self, bank: int) -> bool:
        """Return True if *bank* (1-10) is enabled for scanning."""
        return not self._bank_disabled[bank - 1]

    def set_malformed_channel(self, index: int, malformed: bool = True) -> None:
        """Make ``CIN`` reads of *index* answer with a truncated response."""
        if malformed:
            self._malformed_channels.add(self._check_index(index))
        else:
            self._malformed_channels.discard(index)

    def set_silent(self, mnemonic: str, silent: bool = True) -> None:
        """Make commands with *mnemonic* go unanswered."""
        if silent:
            self._silent.add(mnemonic)
        else:
            self._silent.discard(mnemonic)

    # -- Dispatch ------------------------------------------------------------

    def _process(self, command: str) -> None:
        self.received.append(command)
        fields = command.split(",")
        mnemonic = fields[0].upper()
        if mnemonic in self._silent:
            return
        handler = self._handlers.get(mnemonic)
        response = handler(fields[1:]) if handler is not None else "ERR"
        self._output.extend(response.encode("ascii") + b"\r")

    @staticmethod
    def _check_index(index: int) -> int:
        if not 1 <= index <= CHANNEL_COUNT:
            raise ValueError(f"Channel {index} out of range (1-{CHANNEL_COUNT})")
        return index

    def _parse_index(self, text: str) -> int | None:
        try:
            index = int(text)
        except ValueError:
            return None
        return index if 1 <= index <= CHANNEL_COUNT else None

    # -- Handlers ------------------------------------------------------------

    def _audio_level(self, mnemonic: str, args: list[str], current: int) -> tuple[str, int]:
        if not args:
            return f"{mnemonic},{current}", current
        try:
            level = int(args[0])
        except ValueError:
            return "ERR", current
        if not 0 <= level <= 15:
            return "ERR", current
        return f"{mnemonic},OK", level

    def _volume_command(self, args: list[str]) -> str:
        response, self._volume = self._audio_level("VOL", args, self._volume)
        return response

    def _squelch_command(self, args: list[str]) -> str:
        response, self._squelch = self._audio_level("SQL", args, self._squelch)
        return response

    def _enter_program(self, _: list[str]) -> str:
        self._program_mode = True
        self._scanning = False
        return "PRG,OK"

    def _exit_program(self, _: list[str]) -> str:
        self._program_mode = False
        return "EPG,OK"

    def _key(self, args: list[str]) -> str:
        if self._program_mode or len(args) < 2:
            return "KEY,NG"
        if args[0] == "S":
            self._scanning = True
        elif args[0] == "H":
            self._scanning = False
        else:
            return "KEY,NG"
        return "KEY,OK"

    def _live_status(self, _: list[str]) -> str:
        if self._program_mode:
            return "GLG,,,,,,,,,,,,"
        index = self._receiving
        if index is None:
            return "GLG,,,,,,,,0,,,,"
        ch = self._channels.get(index, _ChannelState())
        return f"GLG,{ch.frequency},{ch.modulation},,0,,,{ch.name},1,0,,{index},"

    def _channel_info(self, args: list[str]) -> str:
        if not self._program_mode or not args:
            return "CIN,NG"
        index = self._parse_index(args[0])
        if index is None:
            return "ERR"
        if len(args) == 1:
            if index in self._malformed_channels:
                return f"CIN,{index}"
            ch = self._channels.get(index, _ChannelState())
            return (
                f"CIN,{index},{ch.name},{ch.frequency},{ch.modulation},"
                f"{ch.delay},{ch.lockout},{ch.priority}"
            )
        if len(args) < 4:
            return "ERR"
        frequency = args[2] or _EMPTY_FREQUENCY
        if len(frequency) != 8 or not frequency.isdigit():
            return "CIN,NG"
        self._channels[index] = _ChannelState(
            name=args[1][:16], frequency=frequency, modulation=args[3] or "AUTO"
        )
        return "CIN,OK"

    def _delete_channel(self, args: list[str]) -> str:
        if not self._program_mode or not args:
            return "DCH,NG"
        index = self._parse_index(args[0])
        if index is None:
            return "ERR"
        self._channels.pop(index, None)
        if self._receiving == index:
            self._receiving = None
        return "DCH,OK"

    def _bank_mask(self, args: list[str]) -> str:
        if not self._program_mode:
            return "SCG,NG"
        if not args:
            return "SCG," + "".join("1" if off else "0" for off in self._bank_disabled)
        mask = args[0]
        if len(mask) != BANK_COUNT or set(mask) - {"0", "1"}:
            return "ERR"
        if mask == "1" * BANK_COUNT:
            # The scanner refuses to disable every bank.
            return "SCG,NG"
        self._bank_disabled = [flag == "1" for flag in mask]
        return "SCG,OK"

    def __repr__(self) -> str:
        bank = bank_of(self._receiving) if self._receiving else None
        return (
            f"ScannerEmulator(program_mode={self._program_mode}, "
            f"channels={len(self._channels)}, receiving_bank={bank})"
        )

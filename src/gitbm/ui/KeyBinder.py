# gitbm/ui/KeyBinder.py
"""KeyBinder.py
==================
Description:
-----------------------
Translates terminal input into :class:`KeyEvent` values and key events into
binding names, for every keymap section of the configuration.

Key Features:
- Decodes curses key codes, control characters and ESC sequences (CSI/SS3,
  xterm modifier variants, Alt chords) into one canonical representation.
- Parses key specification strings such as ``"ctrl+d"``, ``"shift+c"``,
  ``"alt+x"``, ``"tab"`` or ``"D"`` (an upper-case letter means shift).
- Loads keymap sections (``default``, ``input``, ``error``, ``branches``,
  ``stashes``) from ``config["keybindings"]`` over the built-in defaults; each
  binding may be a single string or a list of strings.
- Reverse lookup of the key shown for a binding, used by instruction footers.

Key traces are written to the ``gitbm.keyevents`` logger, which is only active
when ``GITBM_KEYTRACE`` is set.
"""

import curses
import logging
import re
from dataclasses import dataclass
from typing import Any, Optional

from gitbm.utils.logging_config import KEY_LOGGER
from gitbm.utils.utils import DEFAULT_CONFIG, deep_merge


logger = logging.getLogger("gitbm")

MODIFIERS = ("ctrl", "alt", "shift")

NAMED_KEY_ALIASES: dict[str, str] = {
    "escape": "esc",
    "return": "enter",
    "del": "delete",
    "bs": "backspace",
    "space": " ",
    "pgup": "pageup",
    "pgdn": "pagedown",
}

NAMED_KEYS = frozenset(
    {
        "esc", "enter", "tab", "backspace", "delete", "insert", "up", "down",
        "left", "right", "home", "end", "pageup", "pagedown", "resize",
        *(f"f{i}" for i in range(1, 13)),
    }
)


@dataclass(frozen=True)
class KeyEvent:
    """One decoded key press.

    `key` is a named key (``"up"``, ``"enter"``...) or a single lower-case
    character; `char` holds the text the key produces when it is printable.
    """

    key: str
    ctrl: bool = False
    alt: bool = False
    shift: bool = False
    char: Optional[str] = None

    @classmethod
    def from_char(cls, ch: str) -> "KeyEvent":
        if ch.isalpha() and ch != ch.lower():
            return cls(ch.lower(), shift=True, char=ch)
        return cls(ch, char=ch)

    @classmethod
    def parse(cls, spec: str) -> "KeyEvent":
        """Builds a key event from a specification string like ``"ctrl+d"``.

        Raises:
            ValueError: for empty strings, unknown modifiers or unknown named keys.
        """
        if not isinstance(spec, str) or not spec:
            raise ValueError(f"Invalid key specification: {spec!r}")
        if spec in ("+", "-"):
            return cls.from_char(spec)

        parts = re.split(r"[+-](?=.)", spec) if len(spec) > 1 else [spec]
        *mods, base = parts
        mods = [m.strip().lower() for m in mods]
        unknown = [m for m in mods if m not in MODIFIERS]
        if unknown:
            raise ValueError(f"Unknown modifier(s) {unknown} in key specification {spec!r}")

        if len(base) == 1:
            event = cls.from_char(base)
        else:
            name = NAMED_KEY_ALIASES.get(base.lower(), base.lower())
            if name not in NAMED_KEYS and len(name) != 1:
                raise ValueError(f"Unknown key name {base!r} in key specification {spec!r}")
            event = cls(name) if len(name) > 1 else cls.from_char(name)

        return cls(
            event.key,
            ctrl=event.ctrl or "ctrl" in mods,
            alt=event.alt or "alt" in mods,
            shift=event.shift or "shift" in mods,
            char=None if ("ctrl" in mods or "alt" in mods) else event.char,
        )

    @property
    def spec(self) -> str:
        """Canonical specification: modifiers in ctrl, alt, shift order."""
        mods = [name for name, on in zip(MODIFIERS, (self.ctrl, self.alt, self.shift)) if on]
        return "+".join([*mods, self.key])

    @property
    def is_printable(self) -> bool:
        return self.char is not None and not (self.ctrl or self.alt) and self.char.isprintable()


# ==================== KeyBinder Class ====================
class KeyBinder:
    """Class KeyBinder
    ====================
    Owns the keymaps and the terminal key decoder.

    Attributes:
        keymaps (dict): section name -> {canonical key spec -> binding name}.
        display (dict): section name -> {binding name -> key spec as configured}.
    """

    # Normalized escape sequences map. Keys do NOT include the leading ESC (0x1B).
    ESCAPE_SEQUENCE_MAP: dict[str, str] = {
        "[A": "up", "[B": "down", "[C": "right", "[D": "left",
        "OA": "up", "OB": "down", "OC": "right", "OD": "left",

        "[1;2A": "shift+up", "[1;2B": "shift+down",
        "[1;2C": "shift+right", "[1;2D": "shift+left",
        "[1;3A": "alt+up", "[1;3B": "alt+down",
        "[1;3C": "alt+right", "[1;3D": "alt+left",
        "[1;5A": "ctrl+up", "[1;5B": "ctrl+down",
        "[1;5C": "ctrl+right", "[1;5D": "ctrl+left",

        "[H": "home", "[F": "end", "OH": "home", "OF": "end",
        "[1~": "home", "[4~": "end", "[7~": "home", "[8~": "end",

        "[2~": "insert", "[3~": "delete", "[5~": "pageup", "[6~": "pagedown",
        "[Z": "shift+tab",

        "OP": "f1", "OQ": "f2", "OR": "f3", "OS": "f4",
        "[11~": "f1", "[12~": "f2", "[13~": "f3", "[14~": "f4",
        "[15~": "f5", "[17~": "f6", "[18~": "f7", "[19~": "f8",
        "[20~": "f9", "[21~": "f10", "[23~": "f11", "[24~": "f12",
    }

    def __init__(self, config: Optional[dict[str, Any]] = None):
        self.config = config or {}
        self.keymaps: dict[str, dict[str, str]] = {}
        self.display: dict[str, dict[str, str]] = {}
        self._load_keybindings()

    def _load_keybindings(self) -> None:
        """Merges user keybindings over the defaults and indexes every section."""
        merged = deep_merge(
            DEFAULT_CONFIG["keybindings"], self.config.get("keybindings", {}) or {}
        )
        for section, bindings in merged.items():
            if not isinstance(bindings, dict):
                logger.warning(f"Ignoring keybinding section {section!r}: not a table")
                continue
            keymap: dict[str, str] = {}
            display: dict[str, str] = {}
            for binding, specs in bindings.items():
                spec_list = specs if isinstance(specs, list) else [specs]
                for spec in spec_list:
                    try:
                        canonical = self._decode_keystring(spec)
                    except ValueError as e:
                        logger.error(f"Invalid keybinding {section}.{binding} = {spec!r}: {e}")
                        continue
                    if canonical in keymap and keymap[canonical] != binding:
                        logger.warning(
                            f"Key {canonical!r} in [{section}] rebound from "
                            f"{keymap[canonical]!r} to {binding!r}"
                        )
                    keymap[canonical] = binding
                    display.setdefault(binding, str(spec))
            self.keymaps[section] = keymap
            self.display[section] = display
            logger.debug(f"Loaded {len(keymap)} key(s) for keymap section [{section}]")

    @staticmethod
    def _decode_keystring(key_input: str) -> str:
        """Returns the canonical spec for a configured key string."""
        return KeyEvent.parse(str(key_input).strip()).spec

    def keymap(self, section: str) -> dict[str, str]:
        return self.keymaps.get(section, {})

    def lookup(self, section: str, key: KeyEvent | str) -> Optional[str]:
        """Finds the binding name triggered by `key` in `section`."""
        try:
            spec = key.spec if isinstance(key, KeyEvent) else self._decode_keystring(key)
        except ValueError:
            return None
        return self.keymaps.get(section, {}).get(spec)

    def display_key(self, section: str, binding: str) -> str:
        """The key shown in instruction footers for `binding` (first configured key)."""
        return self.display.get(section, {}).get(binding, "?")

    # ----- terminal decoding -----

    @staticmethod
    def _decode_curses_code(code: int) -> Optional[KeyEvent]:
        named: dict[int, str] = {
            curses.KEY_UP: "up",
            curses.KEY_DOWN: "down",
            curses.KEY_LEFT: "left",
            curses.KEY_RIGHT: "right",
            curses.KEY_HOME: "home",
            curses.KEY_END: "end",
            curses.KEY_PPAGE: "pageup",
            curses.KEY_NPAGE: "pagedown",
            curses.KEY_BACKSPACE: "backspace",
            curses.KEY_DC: "delete",
            curses.KEY_IC: "insert",
            curses.KEY_ENTER: "enter",
            curses.KEY_RESIZE: "resize",
        }
        named.update({getattr(curses, f"KEY_F{i}"): f"f{i}" for i in range(1, 13)})
        if code in named:
            return KeyEvent(named[code])
        if code == curses.KEY_BTAB:
            return KeyEvent("tab", shift=True)
        if code == curses.KEY_SR:
            return KeyEvent("up", shift=True)
        if code == curses.KEY_SF:
            return KeyEvent("down", shift=True)
        return None

    @staticmethod
    def decode_char(ch: str) -> KeyEvent:
        """Decodes one character returned by ``get_wch``."""
        code = ord(ch)
        if ch in ("\n", "\r"):
            return KeyEvent("enter")
        if ch == "\t":
            return KeyEvent("tab")
        if code in (8, 127):
            return KeyEvent("backspace")
        if ch == "\x1b":
            return KeyEvent("esc")
        if 1 <= code <= 26:
            return KeyEvent(chr(code + 96), ctrl=True)
        return KeyEvent.from_char(ch)

    def _decode_escape_sequence(self, seq: str) -> KeyEvent:
        if not seq:
            return KeyEvent("esc")
        if seq[0] == "\x1b":
            seq = seq[1:]
        if len(seq) == 1 and seq.isprintable():
            base = KeyEvent.from_char(seq)
            return KeyEvent(base.key, alt=True, shift=base.shift)

        mapped = self.ESCAPE_SEQUENCE_MAP.get(seq)
        if not mapped:
            cleaned = "".join(re.findall(r"[\[O0-9;~A-Za-z]", seq))
            mapped = self.ESCAPE_SEQUENCE_MAP.get(cleaned)
        if mapped:
            return KeyEvent.parse(mapped)

        logger.warning("Unknown escape sequence: ESC + %r", seq)
        return KeyEvent("esc")

    def get_key_input(self, window: "curses.window") -> Optional[KeyEvent]:
        """Reads one key from `window`; returns None when the input timeout expires.

        ESC is followed by a non-blocking read of the rest of the sequence to
        tell a lone Escape from Alt chords and CSI/SS3 sequences.
        """
        try:
            raw = window.get_wch()
        except curses.error:
            return None

        if isinstance(raw, int):
            event = self._decode_curses_code(raw)
            if event is None:
                KEY_LOGGER.debug("unmapped curses code %r", raw)
                return None
        elif raw == "\x1b":
            seq = ""
            window.nodelay(True)
            try:
                while True:
                    try:
                        nx = window.get_wch()
                    except curses.error:
                        break
                    seq += nx if isinstance(nx, str) else f"<{nx}>"
            finally:
                window.nodelay(False)
            event = self._decode_escape_sequence(seq)
        else:
            event = self.decode_char(raw)

        KEY_LOGGER.debug("key %r -> %s", raw, event.spec)
        return event

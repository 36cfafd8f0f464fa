"""
Wallet Shell - Interactive terminal for the keyring.

Commands are registered by name with a description and a handler taking the
command's arguments. Prompts and output are injectable so the shell can run
without a terminal (tests, scripting).

Nothing is persisted until a command has collected all of its input:
abandoning a prompt (Ctrl-C / Ctrl-D) leaves storage untouched.
"""

import logging
import shlex
from typing import Callable, Optional

from prompt_toolkit import PromptSession, print_formatted_text
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.history import FileHistory, InMemoryHistory
from prompt_toolkit.shortcuts import clear as clear_screen

from services.settings import Settings
from wallet.accounts import SECRET_TYPE_MNEMONIC, SECRET_TYPE_PRIVATE_KEY, parse_secret
from wallet.errors import InvalidSecret, WalletError
from wallet.keyring import Keyring, KeyringState

from .theme import STYLE, prompt_message, styled

logger = logging.getLogger(__name__)

CommandHandler = Callable[[list[str]], None]

MAX_PROMPT_ATTEMPTS = 3


class PromptAborted(Exception):
    """The user abandoned a prompt (Ctrl-C, Ctrl-D, or too many bad answers)."""


class WalletShell:
    """
    Helix wallet terminal.

    Usage:
        shell = WalletShell(keyring, settings)
        shell.run()
    """

    def __init__(
        self,
        keyring: Keyring,
        settings: Optional[Settings] = None,
        prompt: Optional[Callable[[str], str]] = None,
        secret_prompt: Optional[Callable[[str], str]] = None,
        output: Optional[Callable[[FormattedText], None]] = None,
        history_path=None,
    ):
        self.keyring = keyring
        self.settings = settings or Settings()
        self._history_path = history_path
        self._session: Optional[PromptSession] = None
        self._prompt = prompt or self._terminal_prompt
        self._secret_prompt = secret_prompt or self._terminal_secret_prompt
        self._output = output or self._terminal_output
        self._namespaces: list[str] = []
        self._commands: dict[str, tuple[CommandHandler, str]] = {}
        self.running = True

        self._register("help", self.handle_help, "Print all available commands")
        self._register("create", self.handle_create, "Create a new wallet (create key: single private key)")
        self._register("import", self.handle_import, "Import a recovery phrase or private key")
        self._register("address", self.handle_address, "Show the active address and encryption key")
        self._register("addresses", self.handle_addresses, "List all addresses")
        self._register("add-address", self.handle_add_address, "Derive a new address")
        self._register("use", self.handle_use, "Set the active address (use <address|number>)")
        self._register("unlock", self.handle_unlock, "Unlock the wallet for signing")
        self._register("lock", self.handle_lock, "Lock the wallet")
        self._register("status", self.handle_status, "Show wallet lock status")
        self._register("sign", self.handle_sign, "Sign a message with the active address")
        self._register("read-note", self.handle_read_note, "Decrypt a note sent to your encryption key")
        self._register("remove", self.handle_remove, "Remove the wallet from this machine")
        self._register("clear", self.handle_clear, "Clear terminal")
        self._register("exit", self.handle_exit, "Exit the wallet terminal")

    def _register(self, name: str, handler: CommandHandler, description: str) -> None:
        self._commands[name] = (handler, description)

    @property
    def commands(self) -> list[str]:
        return list(self._commands)

    # ============================================
    # Terminal I/O
    # ============================================

    def _get_session(self) -> PromptSession:
        if self._session is None:
            history = FileHistory(str(self._history_path)) if self._history_path else InMemoryHistory()
            self._session = PromptSession(
                history=history,
                completer=WordCompleter(self.commands, sentence=True),
                style=STYLE,
            )
        return self._session

    def _prompt_text(self, message: str) -> FormattedText:
        parts = list(prompt_message(self._namespaces))
        if message:
            parts.append(("", f"{message} "))
        return FormattedText(parts)

    def _terminal_prompt(self, message: str) -> str:
        return self._get_session().prompt(self._prompt_text(message))

    def _terminal_secret_prompt(self, message: str) -> str:
        # Secrets never go to history
        session = PromptSession(style=STYLE)
        return session.prompt(self._prompt_text(message), is_password=True)

    def _terminal_output(self, text: FormattedText) -> None:
        print_formatted_text(text, style=STYLE)

    def say(self, text: str, kind: str = "default", bold: bool = False) -> None:
        self._output(styled(text, kind, bold))

    def _ask(self, message: str, secret: bool = False) -> str:
        ask = self._secret_prompt if secret else self._prompt
        try:
            return ask(message)
        except (KeyboardInterrupt, EOFError) as e:
            raise PromptAborted() from e

    def _ask_until(self, message: str, check: Callable[[str], Optional[str]],
                   secret: bool = False) -> str:
        """Prompt until check() returns None (no error), up to MAX_PROMPT_ATTEMPTS."""
        for _ in range(MAX_PROMPT_ATTEMPTS):
            answer = self._ask(message, secret=secret)
            error = check(answer)
            if error is None:
                return answer
            self.say(error, "error")
        raise PromptAborted()

    def _ask_new_password(self) -> str:
        min_length = self.settings.min_password_length

        def check_length(value: str) -> Optional[str]:
            if len(value) < min_length:
                return f"Password must be at least {min_length} characters"
            return None

        password = self._ask_until("Enter a password for your wallet:", check_length, secret=True)
        self._ask_until(
            "Confirm the password:",
            lambda value: None if value == password else "Password does not match. Please try again.",
            secret=True,
        )
        return password

    def _ask_current_password(self) -> str:
        return self._ask_until(
            "Enter your wallet password:",
            lambda value: None if self.keyring.validate_password(value) else "Password is incorrect. Please try again.",
            secret=True,
        )

    def _ask_yes(self, message: str) -> bool:
        return self._ask(f"{message} (type 'yes' to confirm):").strip().lower() == "yes"

    def _require_wallet(self) -> bool:
        if not self.keyring.wallet_exists():
            self.say("Wallet not found! Use 'create' or 'import' first.", "error", bold=True)
            return False
        return True

    # ============================================
    # Dispatch
    # ============================================

    def handle_line(self, line: str) -> None:
        """Run one command line."""
        try:
            parts = shlex.split(line)
        except ValueError:
            self.say(f"Cannot parse command: {line}", "error")
            return
        if not parts:
            return

        name, args = parts[0], parts[1:]
        entry = self._commands.get(name)
        if entry is None:
            self.say(f"Unknown command: '{name}'. Type 'help' for a list of commands.", "error")
            return

        handler, _ = entry
        try:
            handler(args)
        except PromptAborted:
            self.say("Cancelled.", "warning")
        except WalletError as e:
            logger.debug(f"Command '{name}' failed: {type(e).__name__}")
            self.say(str(e), "error", bold=True)
        finally:
            self._namespaces.clear()

    def run(self) -> None:
        """Read-eval loop until 'exit' or Ctrl-D."""
        self.say("Welcome to Helix Crypto Wallet Terminal.", "success", bold=True)
        self.say("Type 'help' to list available commands.\n", "info")
        while self.running:
            try:
                line = self._prompt("")
            except KeyboardInterrupt:
                continue
            except EOFError:
                break
            self.handle_line(line)
        self.say("Goodbye!")

    # ============================================
    # Commands
    # ============================================

    def handle_help(self, args: list[str]) -> None:
        self.say("\nAvailable commands:")
        for name, (_, description) in self._commands.items():
            self.say(f"  {name.ljust(20)} {description}")
        self.say("")

    def _store_new_secret(self, secret_text: str, password: str) -> None:
        address = self.keyring.persist(secret_text, password)
        self.say("\n     Wallet created successfully!", "success", bold=True)
        self.say(f"     Address: {address}\n", "success")

    def handle_create(self, args: list[str]) -> None:
        if self.keyring.wallet_exists():
            self.say("Wallet already exists!", "info", bold=True)
            return
        kind = SECRET_TYPE_PRIVATE_KEY if args and args[0] == "key" else SECRET_TYPE_MNEMONIC

        self._namespaces.append("Create Wallet")
        password = self._ask_new_password()

        secret_text = self.keyring.generate_secret(kind, self.settings.word_count)
        label = "Recovery Phrase" if kind == SECRET_TYPE_MNEMONIC else "Private Key"
        self.say(f"\n     New {label} Generated:", "success")
        self.say(f"\n           {secret_text}\n", "info", bold=True)

        if not self._ask_yes("Please save it and don't share it with anyone"):
            self.say("You must save your secret to create a wallet!", "error", bold=True)
            return

        self._store_new_secret(secret_text, password)

    def handle_import(self, args: list[str]) -> None:
        if self.keyring.wallet_exists():
            self.say("Wallet already exists!", "info", bold=True)
            return

        self._namespaces.append("Import Wallet")

        def check_secret(value: str) -> Optional[str]:
            try:
                parse_secret(value)
            except InvalidSecret as e:
                return str(e)
            return None

        secret_text = self._ask_until("Enter recovery phrase or private key:", check_secret, secret=True)
        password = self._ask_new_password()
        self._store_new_secret(secret_text, password)

    def handle_address(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        self.say(f"\n     Active address: {self.keyring.get_active_address()}", "success", bold=True)
        encryption_key = self.keyring.get_encryption_public_key()
        if encryption_key:
            self.say(f"     Encryption key: {encryption_key}", "success")
        self.say("")

    def handle_addresses(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        active = self.keyring.get_active_address()
        self.say("\n     Addresses:")
        for i, address in enumerate(self.keyring.get_addresses(), start=1):
            marker = " (active)" if address == active else ""
            self.say(f"       ({i}): {address}{marker}", "success")
        self.say("")

    def handle_add_address(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        self._namespaces.append("Add Address")
        password = self._ask_current_password()
        address = self.keyring.add_address(password)
        self.say(f"\n     New address: {address}\n", "success", bold=True)

    def handle_use(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        if not args:
            self.say("Usage: use <address|number>", "warning")
            return

        target = args[0]
        if target.isdigit():
            addresses = self.keyring.get_addresses()
            number = int(target)
            if not 1 <= number <= len(addresses):
                self.say(f"No address #{number}", "error")
                return
            target = addresses[number - 1]

        address = self.keyring.set_active_address(target)
        self.say(f"Active address: {address}", "success")

    def handle_unlock(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        if self.keyring.is_unlocked:
            self.say("Wallet is already unlocked.", "info")
            return
        password = self._ask("Enter your wallet password:", secret=True)
        if self.keyring.unlock(password):
            self.say("Wallet unlocked.", "success")
        else:
            self.say("Password is incorrect.", "error")

    def handle_lock(self, args: list[str]) -> None:
        self.keyring.lock()
        self.say("Wallet locked.", "success")

    def handle_status(self, args: list[str]) -> None:
        state = self.keyring.state
        labels = {
            KeyringState.NO_WALLET: ("No wallet", "warning"),
            KeyringState.LOCKED: ("Locked", "info"),
            KeyringState.UNLOCKED: ("Unlocked", "success"),
        }
        label, kind = labels[state]
        self.say(f"Status: {label}", kind)

    def handle_sign(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        message = " ".join(args) if args else self._ask("Enter message to sign:")
        signature = self.keyring.sign_message(message)
        self.say(f"Signature: 0x{signature.hex()}", "success")

    def handle_read_note(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        # Prompted rather than taken from args: shlex would strip the JSON quotes
        envelope = self._ask("Paste the note envelope:")
        self.say(f"Note: {self.keyring.decrypt_note(envelope)}", "success")

    def handle_remove(self, args: list[str]) -> None:
        if not self._require_wallet():
            return
        self._namespaces.append("Remove Wallet")
        self.say("This deletes the encrypted secret from this machine.", "warning", bold=True)
        self._ask_current_password()
        if not self._ask_yes("Make sure you have a backup of your secret"):
            self.say("Wallet kept.", "info")
            return
        self.keyring.remove_keyring()
        self.say("Wallet removed.", "success")

    def handle_clear(self, args: list[str]) -> None:
        clear_screen()

    def handle_exit(self, args: list[str]) -> None:
        self.running = False

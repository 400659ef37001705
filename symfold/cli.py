#!/usr/bin/env python3
"""
SYMFOLD Command-Line Interface

Provides interactive REPL, script execution, and pipe/filter modes.

Usage:
    symfold                           # Start REPL
    symfold script.sym                # Run script
    symfold -e "(+ x x)"              # Evaluate expression
    symfold -b x=3 -e "(* x y)"       # Evaluate at x = 3
    echo "(+ 1 2)" | symfold          # Filter mode

Script Format (.sym files):
    #!/usr/bin/env symfold
    :prelude exact
    :bind x 2

    (+ x (* 2 x))
    (:= (^ y 2) (-> y 3))

REPL Commands:
    :help              Show help
    :prelude NAME      Set prelude (exact, none, or path.py)
    :bind NAME VALUE   Bind a variable to an expression
    :unbind NAME       Remove a binding
    :bindings          List bindings
    :faults            Show faults from the last evaluation
    :inverse MATRIX    Invert a matrix given as ((a b) (c d))
    :quit              Exit
"""

import argparse
import importlib.util
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from . import __version__
from .evaluate import evaluate
from .expr import Expression, Symbol
from .functions import EXACT_PRELUDE, NO_PRELUDE, EvaluationFault, PreludeType, make_prelude
from .matrix import Matrix
from .sexpr import build_expr, count_parens, format_sexpr, parse_sexpr, read_sexpr

logger = logging.getLogger(__name__)

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

# Built-in preludes
BUILTIN_PRELUDES: Dict[str, PreludeType] = {
    "none": NO_PRELUDE,
    "exact": EXACT_PRELUDE,
}

# Standard prelude search paths
PRELUDE_SEARCH_PATHS = [
    Path("./preludes"),
    Path.home() / ".config" / "symfold" / "preludes",
]


def load_custom_prelude(name_or_path: str) -> Optional[PreludeType]:
    """
    Load a custom prelude from a Python file.

    The file should define a PRELUDE dict mapping names to handlers or
    Functions.

    Args:
        name_or_path: Either a path to a .py file, or a name to search for

    Returns:
        The prelude, or None if not found
    """
    path = Path(name_or_path)

    if path.suffix == ".py" or "/" in name_or_path or "\\" in name_or_path:
        if not path.exists():
            return None
        search_paths = [path]
    else:
        search_paths = []
        for search_dir in PRELUDE_SEARCH_PATHS:
            candidate = search_dir / f"{name_or_path}.py"
            if candidate.exists():
                search_paths.append(candidate)

    for prelude_path in search_paths:
        try:
            spec = importlib.util.spec_from_file_location("custom_prelude", prelude_path)
            if spec and spec.loader:
                module = importlib.util.module_from_spec(spec)
                spec.loader.exec_module(module)
                if hasattr(module, "PRELUDE"):
                    return make_prelude(module.PRELUDE)
        except Exception as e:
            logger.error("Error loading prelude from %s: %s", prelude_path, e)

    return None


class SymfoldCompleter:
    """Tab completer for the SYMFOLD REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":prelude", ":bind", ":unbind", ":bindings",
        ":faults", ":inverse",
    ]

    def __init__(self, repl: 'SymfoldREPL'):
        self.repl = repl
        self.matches: List[str] = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)

        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        line = line.lstrip()

        if line.startswith(":prelude "):
            return [p for p in BUILTIN_PRELUDES if p.startswith(text)]

        if line.startswith(":unbind "):
            names = [str(variable) for variable in self.repl.bindings]
            return [n for n in names if n.startswith(text)]

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        # Function names inside expressions
        stripped = text.lstrip("(")
        prefix = text[:len(text) - len(stripped)]
        return [prefix + name for name in self.repl.functions if name.startswith(stripped)]


class SymfoldREPL:
    """Interactive REPL for symfold."""

    def __init__(self):
        self.functions: PreludeType = EXACT_PRELUDE
        self.bindings: Dict[Expression, Expression] = {}
        self.faults: List[EvaluationFault] = []
        self.running = True
        self.multi_line_buffer = ""

        # Set up readline history and completion
        if HAS_READLINE:
            self.history_file = Path.home() / ".symfold_history"
            try:
                readline.read_history_file(self.history_file)
            except (FileNotFoundError, OSError):
                pass
            readline.set_history_length(1000)

            self.completer = SymfoldCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.debug("Could not save history: %s", e)

    def set_prelude(self, name: str) -> bool:
        """Set the prelude by name or path."""
        name_lower = name.lower()

        if name_lower in BUILTIN_PRELUDES:
            self.functions = BUILTIN_PRELUDES[name_lower]
            return True

        custom = load_custom_prelude(name)
        if custom is not None:
            self.functions = custom
            return True

        return False

    def parse(self, text: str) -> Optional[Expression]:
        """Parse text with the current prelude."""
        return parse_sexpr(text, self.functions)

    def bind(self, name: str, value_text: str) -> Expression:
        """Bind name to the evaluated value of value_text."""
        value = self.parse(value_text)
        if value is None:
            raise ValueError("Missing value")
        value = evaluate(value, self.bindings)
        self.bindings[Symbol(name)] = value
        return value

    def invert(self, text: str) -> Matrix:
        """Parse ((a b) (c d)) into a matrix, apply the bindings and invert it."""
        tree = read_sexpr(text)
        if not isinstance(tree, list) or not all(isinstance(row, list) for row in tree):
            raise ValueError("Expected a matrix such as ((1 2) (3 4))")
        rows = [[build_expr(entry, self.functions) for entry in row] for row in tree]
        return Matrix.from_rows(rows).evaluate(self.bindings) ** -1

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd == "quit" or cmd == "exit" or cmd == "q":
            self.running = False
            return None

        elif cmd == "prelude":
            if not arg:
                available = ", ".join(BUILTIN_PRELUDES.keys())
                return f"Usage: :prelude NAME\nAvailable: {available}\nOr provide a path to a .py file"
            if self.set_prelude(arg):
                return f"Prelude set to: {arg}"
            else:
                return f"Unknown prelude: {arg}"

        elif cmd == "bind":
            name, _, value_text = arg.partition(" ")
            if not name or not value_text.strip():
                return "Usage: :bind NAME VALUE"
            try:
                value = self.bind(name, value_text)
            except Exception as e:
                return f"Error: {e}"
            return f"{name} = {format_sexpr(value)}"

        elif cmd == "unbind":
            if not arg:
                return "Usage: :unbind NAME"
            if self.bindings.pop(Symbol(arg), None) is None:
                return f"Unknown binding: {arg}"
            return f"Unbound {arg}"

        elif cmd == "bindings":
            if not self.bindings:
                return "No bindings"
            return "\n".join(f"{variable} = {value}" for variable, value in self.bindings.items())

        elif cmd == "faults":
            if not self.faults:
                return "No faults"
            return "\n".join(str(fault) for fault in self.faults)

        elif cmd == "inverse":
            if not arg:
                return "Usage: :inverse ((a b) (c d))"
            try:
                return str(self.invert(arg))
            except Exception as e:
                return f"Error: {e}"

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        """Return help text."""
        return """SYMFOLD REPL Commands:
  :help              Show this help
  :prelude NAME      Set prelude (exact, none, or path.py)
  :bind NAME VALUE   Bind a variable, e.g. :bind x (+ 1 2)
  :unbind NAME       Remove a binding
  :bindings          List bindings
  :faults            Show faults from the last evaluation
  :inverse MATRIX    Invert a matrix, e.g. :inverse ((1 2) (3 4))
  :quit              Exit

Syntax:
  (+ x (* 2 x))                  Sum, product, (- a b), (/ a b), (^ a b)
  (< 3 5)  (and p q)  (not p)    Relations and logic
  (:= (* x y) (set (-> x 2)))    Substitution
  (sqrt 16)  (abs -3)            Prelude functions
"""

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        line = line.strip()

        # Empty line or comment
        if not line or line.startswith("#"):
            return None

        # Command
        if line.startswith(":") and not line.startswith(":="):
            return self.handle_command(line)

        # Expression to evaluate
        try:
            expr = self.parse(line)
            if expr is None:
                return None

            faults: List[EvaluationFault] = []
            result = evaluate(expr, self.bindings, faults=faults)
            self.faults = faults

            output = format_sexpr(result)
            for fault in faults:
                output += f"\n; fault: {fault}"
            return output

        except Exception as e:
            return f"Error: {e}"

    def run(self):
        """Run the REPL loop."""
        print("SYMFOLD - Symbolic Folding of Expression Trees")
        print("Type :help for help, :quit to exit")
        print("Multi-line input: expressions with unbalanced parens continue on next line")
        print()

        while self.running:
            try:
                if self.multi_line_buffer:
                    prompt = "...... "
                else:
                    prompt = "symfold> "

                line = input(prompt)

                if self.multi_line_buffer:
                    self.multi_line_buffer += "\n" + line
                else:
                    self.multi_line_buffer = line

                paren_count = count_parens(self.multi_line_buffer)

                if paren_count > 0:
                    continue
                elif paren_count < 0:
                    print("Error: Unbalanced parentheses (too many closing)")
                    self.multi_line_buffer = ""
                    continue

                complete_input = self.multi_line_buffer
                self.multi_line_buffer = ""

                result = self.process_line(complete_input)
                if result:
                    print(result)

            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                # Cancel multi-line input on Ctrl+C
                if self.multi_line_buffer:
                    print("\nInput cancelled")
                    self.multi_line_buffer = ""
                else:
                    print()
                continue

        self.save_history()


class ScriptRunner:
    """Runs symfold scripts."""

    def __init__(self):
        self.repl = SymfoldREPL()

    def run_script(self, path: Path, quiet: bool = False) -> int:
        """
        Run a script file.

        Args:
            path: Path to the script
            quiet: If True, don't print expression results

        Returns:
            Exit code (0 for success)
        """
        try:
            lines = path.read_text().splitlines()
        except OSError as e:
            print(f"Error reading {path}: {e}", file=sys.stderr)
            return 1

        for lineno, line in enumerate(lines, 1):
            line = line.strip()

            # Skip empty lines, comments, and shebang
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            if not result:
                continue
            if result.startswith("Error") or result.startswith("Unknown") or result.startswith("Usage"):
                print(f"{path}:{lineno}: {result}", file=sys.stderr)
                return 1
            is_command = line.startswith(":") and not line.startswith(":=")
            if not quiet and (not is_command or line.split()[0] in (":inverse", ":faults", ":bindings")):
                print(result)

        return 0

    def run_expression(self, expr_str: str) -> int:
        """
        Evaluate a single expression.

        Returns:
            Exit code (0 for success)
        """
        result = self.repl.process_line(expr_str)
        if result:
            print(result)
            if result.startswith("Error"):
                return 1
        return 0

    def run_stdin(self) -> int:
        """
        Read expressions from stdin and evaluate them.

        Returns:
            Exit code (0 for success)
        """
        for line in sys.stdin:
            line = line.strip()
            if not line or line.startswith("#"):
                continue

            result = self.repl.process_line(line)
            if result:
                print(result)
                if result.startswith("Error"):
                    return 1

        return 0


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="symfold",
        description="SYMFOLD - Symbolic Folding of Expression Trees",
        epilog="Examples:\n"
               "  symfold                          Start REPL\n"
               "  symfold script.sym               Run script\n"
               "  symfold -e '(+ x x)'             Evaluate expression\n"
               "  symfold -b x=2 -e '(* x y)'      Evaluate at x = 2\n"
               "  echo '(+ 1 2)' | symfold         Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "script",
        nargs="?",
        help="Script file to run (.sym)"
    )

    parser.add_argument(
        "-e", "--expr",
        help="Evaluate a single expression"
    )

    parser.add_argument(
        "-p", "--prelude",
        default="exact",
        help="Set prelude (exact, none, or path.py)"
    )

    parser.add_argument(
        "-b", "--bind",
        action="append",
        default=[],
        metavar="NAME=VALUE",
        help="Bind a variable before evaluating (can be specified multiple times)"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log debug messages to stderr"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    runner = ScriptRunner()

    if not runner.repl.set_prelude(args.prelude):
        print(f"Unknown prelude: {args.prelude}", file=sys.stderr)
        sys.exit(1)

    for binding in args.bind:
        name, sep, value = binding.partition("=")
        if not sep or not name.strip():
            print(f"Invalid binding: {binding} (expected NAME=VALUE)", file=sys.stderr)
            sys.exit(1)
        try:
            runner.repl.bind(name.strip(), value)
        except Exception as e:
            print(f"Error binding {name.strip()}: {e}", file=sys.stderr)
            sys.exit(1)

    if args.script:
        sys.exit(runner.run_script(Path(args.script), quiet=args.quiet))

    elif args.expr:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        sys.exit(runner.run_stdin())

    else:
        runner.repl.run()


if __name__ == "__main__":
    main()

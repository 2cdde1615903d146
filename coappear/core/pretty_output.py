"""
Pretty output formatting for CLI.

Provides consistent terminal output for the detect command and the
progress observer.
"""

from colorama import Fore, Style
import os


class PrettyOutput:
    """
    Pretty output formatter for the coappear CLI.

    Provides colored, boxed terminal output with a consistent visual
    hierarchy.
    """

    # Color scheme
    PRIMARY = Fore.CYAN
    SUCCESS = Fore.GREEN
    WARNING = Fore.YELLOW
    ERROR = Fore.RED
    INFO = Fore.BLUE
    HEADER = Fore.WHITE + Style.BRIGHT
    DIM = Style.DIM
    RESET = Style.RESET_ALL

    # Symbols
    CHECK = "✓"
    CROSS = "✗"
    ARROW = "→"
    DOT = "•"
    WARN = "⚠"
    INFO_SYMBOL = "ℹ"
    MAGNIFY = "🔍"

    @staticmethod
    def get_terminal_width():
        """Get terminal width, default to 80 if cannot determine."""
        try:
            return os.get_terminal_size().columns
        except OSError:
            return 80

    @staticmethod
    def header(text, width=None):
        """
        Print a major header with box drawing.

        Args:
            text: Header text
            width: Box width (default: terminal width, max 80)
        """
        if width is None:
            width = min(PrettyOutput.get_terminal_width(), 80)

        padding = (width - len(text) - 2) // 2
        line = "═" * width

        print(f"\n{PrettyOutput.PRIMARY}╔{line}╗")
        print(f"║{' ' * padding}{text}{' ' * (width - len(text) - padding)}║")
        print(f"╚{line}╝{PrettyOutput.RESET}\n")

    @staticmethod
    def success(message, indent=0):
        """Print a success message with checkmark."""
        spaces = " " * indent
        print(f"{spaces}{PrettyOutput.SUCCESS}{PrettyOutput.CHECK}{PrettyOutput.RESET} {message}")

    @staticmethod
    def error(message, indent=0):
        """Print an error message with cross."""
        spaces = " " * indent
        print(f"{spaces}{PrettyOutput.ERROR}{PrettyOutput.CROSS}{PrettyOutput.RESET} {message}")

    @staticmethod
    def warning(message, indent=0):
        """Print a warning message."""
        spaces = " " * indent
        print(f"{spaces}{PrettyOutput.WARNING}{PrettyOutput.WARN}{PrettyOutput.RESET} {message}")

    @staticmethod
    def info(message, indent=0):
        """Print an info message."""
        spaces = " " * indent
        print(f"{spaces}{PrettyOutput.INFO}{PrettyOutput.INFO_SYMBOL}{PrettyOutput.RESET} {message}")

    @staticmethod
    def key_value(key, value, indent=0, value_color=None):
        """
        Print a key-value pair.

        Args:
            key: Key text
            value: Value text
            indent: Indentation level
            value_color: Optional color for value
        """
        spaces = " " * indent
        if value_color:
            print(f"{spaces}{PrettyOutput.DIM}{key}:{PrettyOutput.RESET} {value_color}{value}{PrettyOutput.RESET}")
        else:
            print(f"{spaces}{PrettyOutput.DIM}{key}:{PrettyOutput.RESET} {value}")

    @staticmethod
    def blank_line():
        """Print a blank line."""
        print()

    @staticmethod
    def task_start(message, icon=None):
        """Print a task starting message."""
        icon = icon or PrettyOutput.MAGNIFY
        print(f"\n{icon} {PrettyOutput.HEADER}{message}{PrettyOutput.RESET}")

    @staticmethod
    def task_complete(message, duration=None):
        """
        Print a task completion message.

        Args:
            message: Completion message
            duration: Optional duration in seconds
        """
        if duration is not None:
            print(f"{PrettyOutput.SUCCESS}{PrettyOutput.CHECK}{PrettyOutput.RESET} {message} {PrettyOutput.DIM}({duration:.1f}s){PrettyOutput.RESET}")
        else:
            print(f"{PrettyOutput.SUCCESS}{PrettyOutput.CHECK}{PrettyOutput.RESET} {message}")

    @staticmethod
    def output_file(label, path, indent=2):
        """Print an output file path."""
        spaces = " " * indent
        print(f"{spaces}{PrettyOutput.ARROW} {PrettyOutput.DIM}{label}:{PrettyOutput.RESET} {path}")

    @staticmethod
    def summary_box(title, items, width=None):
        """
        Print a summary box with items.

        Args:
            title: Box title
            items: List of (key, value, color) tuples
            width: Box width (default: 60)
        """
        if width is None:
            width = 60

        print(f"\n{PrettyOutput.PRIMARY}┌{'─' * (width - 2)}┐{PrettyOutput.RESET}")

        title_padding = (width - len(title) - 4) // 2
        print(f"{PrettyOutput.PRIMARY}│{PrettyOutput.RESET} {' ' * title_padding}{PrettyOutput.HEADER}{title}{PrettyOutput.RESET}{' ' * (width - len(title) - title_padding - 4)} {PrettyOutput.PRIMARY}│{PrettyOutput.RESET}")

        print(f"{PrettyOutput.PRIMARY}├{'─' * (width - 2)}┤{PrettyOutput.RESET}")

        for key, value, color in items:
            value_str = str(value)
            padding = max(width - len(key) - len(value_str) - 6, 1)
            print(f"{PrettyOutput.PRIMARY}│{PrettyOutput.RESET}  {PrettyOutput.DIM}{key}:{PrettyOutput.RESET}{' ' * padding}{color}{value_str}{PrettyOutput.RESET}  {PrettyOutput.PRIMARY}│{PrettyOutput.RESET}")

        print(f"{PrettyOutput.PRIMARY}└{'─' * (width - 2)}┘{PrettyOutput.RESET}\n")

    @staticmethod
    def compact_table(headers, rows, col_widths=None):
        """
        Print a compact table.

        Args:
            headers: List of header strings
            rows: List of row tuples
            col_widths: Optional list of column widths
        """
        if not col_widths:
            col_widths = [max(len(str(h)), max(len(str(r[i])) for r in rows) if rows else 0)
                          for i, h in enumerate(headers)]

        header_str = "  ".join(f"{h:<{col_widths[i]}}" for i, h in enumerate(headers))
        print(f"  {PrettyOutput.HEADER}{header_str}{PrettyOutput.RESET}")
        print(f"  {PrettyOutput.DIM}{'─' * len(header_str)}{PrettyOutput.RESET}")

        for row in rows:
            row_str = "  ".join(f"{str(v):<{col_widths[i]}}" for i, v in enumerate(row))
            print(f"  {row_str}")

    @staticmethod
    def detection_summary(result):
        """
        Print the summary of a detection run.

        Args:
            result: DetectionResult
        """
        po = PrettyOutput
        share = (result.noisy_record_count / result.n_records * 100) if result.n_records else 0.0
        noisy_color = po.WARNING if result.noisy_record_count else po.SUCCESS

        po.summary_box("Noise Detection Results", [
            ("Records", f"{result.n_records:,}", po.INFO),
            ("Attributes", result.n_attributes, po.INFO),
            ("Noisy records", f"{result.noisy_record_count:,} ({share:.1f}%)", noisy_color),
            ("Noisy cells", f"{result.noisy_cell_count:,}", noisy_color),
            ("Duration", f"{result.duration_seconds:.2f}s", po.DIM),
        ])

        rows = [
            (name, kind, size, result.noisy_counts_by_attribute[name])
            for name, kind, size in zip(result.columns, result.column_kinds, result.domain_sizes)
        ]
        if rows:
            po.compact_table(["Attribute", "Kind", "Domain", "Noisy cells"], rows)

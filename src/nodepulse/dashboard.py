"""TUI Dashboard for nodepulse."""

from __future__ import annotations

from dataclasses import dataclass

from textual.app import App, ComposeResult
from textual.message import Message
from textual.reactive import reactive
from textual.widgets import Footer, Header, Label, Static
from textual.worker import Worker, WorkerState

from .orchestrator import Orchestrator
from .status import NodeSnapshot, StatusBoard

SPINNER_FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"


def spinner_frame(ticks: int) -> str:
    return SPINNER_FRAMES[ticks % len(SPINNER_FRAMES)]


def header_markup(snapshot: NodeSnapshot) -> str:
    """Panel header: spinner, node name and endpoint."""
    if snapshot.error:
        return f"[bold red]✗ {snapshot.name}[/] [dim]not polled[/]"
    color = "red" if snapshot.failed else "green" if snapshot.ticks else "yellow"
    endpoint = f" [dim]{snapshot.endpoint}[/]" if snapshot.endpoint else ""
    return f"[{color}]{spinner_frame(snapshot.ticks)}[/] [bold blue]{snapshot.name}[/]{endpoint}"


class NodePanel(Static):
    """A panel displaying the latest status of a single node."""

    snapshot: reactive[NodeSnapshot | None] = reactive(None)

    def __init__(self, node_name: str, **kwargs) -> None:
        super().__init__(**kwargs)
        self.node_name = node_name

    def compose(self) -> ComposeResult:
        yield Label(id=f"header-{self.node_name}")
        yield Static("waiting for first tick...", id=f"body-{self.node_name}", markup=False)

    def watch_snapshot(self, snapshot: NodeSnapshot | None) -> None:
        """Redraw header and body when a new status arrives."""
        if snapshot is None or not self.is_mounted:
            return
        self.query_one(f"#header-{self.node_name}", Label).update(header_markup(snapshot))
        body = self.query_one(f"#body-{self.node_name}", Static)
        body.update("\n".join(snapshot.display_lines()))
        body.set_class(snapshot.failed, "failed")


def status_text(nodes: int, interval: float, ticks: int, running: bool = True) -> str:
    """Status bar line; ``running`` is False once every poller has stopped."""
    state = "Running..." if running else "Finished"
    return (
        f"{nodes} node(s) every {interval:g}s | {ticks} tick(s) | "
        f"{state} | Press 'q' to quit"
    )


class StatusBar(Static):
    """Bottom status bar showing overall progress."""

    ticks: reactive[int] = reactive(0)
    nodes: reactive[int] = reactive(0)
    interval: reactive[float] = reactive(10.0)
    running: reactive[bool] = reactive(True)

    def render(self) -> str:
        return status_text(self.nodes, self.interval, self.ticks, self.running)


@dataclass
class NodeUpdate(Message):
    """Message for a node status change."""

    snapshot: NodeSnapshot


class Dashboard(App):
    """Main TUI Dashboard application."""

    CSS = """
    Screen {
        layout: grid;
        grid-size: 2;
        grid-gutter: 1;
    }

    NodePanel {
        border: solid $primary;
        height: 100%;
        min-height: 6;
    }

    NodePanel Label {
        dock: top;
        padding: 0 1;
        background: $surface;
    }

    NodePanel Static {
        padding: 0 1;
    }

    NodePanel .failed {
        color: $error;
    }

    StatusBar {
        dock: bottom;
        height: 1;
        background: $surface;
        padding: 0 1;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("escape", "quit", "Quit"),
    ]

    def __init__(
        self,
        orchestrator: Orchestrator,
        board: StatusBoard,
        max_ticks: int | None = None,
        **kwargs,
    ) -> None:
        super().__init__(**kwargs)
        self.orchestrator = orchestrator
        self.board = board
        self.max_ticks = max_ticks
        self.panels: dict[str, NodePanel] = {}
        self._worker: Worker | None = None

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        for snapshot in self.board.snapshot():
            panel = NodePanel(snapshot.name, id=f"panel-{snapshot.name}")
            self.panels[snapshot.name] = panel
            yield panel

        yield StatusBar(id="status-bar")
        yield Footer()

    def on_mount(self) -> None:
        """Start polling when the app mounts."""
        status_bar = self.query_one("#status-bar", StatusBar)
        status_bar.nodes = len(self.orchestrator.pollers)
        status_bar.interval = self.orchestrator.interval

        for snapshot in self.board.snapshot():
            self.panels[snapshot.name].snapshot = snapshot

        self.board.subscribe(self._on_update)
        self._worker = self.run_worker(
            self.orchestrator.run(self.max_ticks), exclusive=True, name="pollers"
        )

    def on_worker_state_changed(self, event: Worker.StateChanged) -> None:
        """Mark the status bar finished once every poller has stopped."""
        if event.worker == self._worker and event.state == WorkerState.SUCCESS:
            status_bar = self.query_one("#status-bar", StatusBar)
            status_bar.running = False

    def _on_update(self, snapshot: NodeSnapshot) -> None:
        """Handle a board write - posts message to the app."""
        self.post_message(NodeUpdate(snapshot))

    def on_node_update(self, message: NodeUpdate) -> None:
        """Handle NodeUpdate message."""
        if message.snapshot.name in self.panels:
            self.panels[message.snapshot.name].snapshot = message.snapshot

        status_bar = self.query_one("#status-bar", StatusBar)
        status_bar.ticks = self.board.total_ticks

    async def action_quit(self) -> None:
        """Quit the application."""
        if self._worker and self._worker.is_running:
            self._worker.cancel()
        self.exit()

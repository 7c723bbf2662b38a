"""
Rest prompt shown when it is time to look away from the screen.
"""

from __future__ import annotations

from PySide6.QtCore import QPoint, QSize, Qt, Signal
from PySide6.QtGui import QColor, QHideEvent, QScreen, QShowEvent
from PySide6.QtWidgets import (
    QGraphicsDropShadowEffect,
    QHBoxLayout,
    QLabel,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

TIP_TITLE = "Time to rest your eyes"
TIP_MESSAGE = "Look at something 20 feet away for 20 seconds."


class TipWindow(QWidget):
    visibilityChanged = Signal(bool)
    rested = Signal()
    skipped = Signal()

    def __init__(self, screen: QScreen | None = None, parent: QWidget | None = None) -> None:
        flags = Qt.WindowType.Tool | Qt.WindowType.FramelessWindowHint | Qt.WindowType.WindowStaysOnTopHint
        super().__init__(parent)
        self.setWindowFlags(flags)
        self.setObjectName("TipWindow")
        self.setAttribute(Qt.WidgetAttribute.WA_TranslucentBackground, True)
        self._screen = screen

        self._container = QWidget(self)
        self._container.setObjectName("TipCard")
        shadow = QGraphicsDropShadowEffect(self._container)
        shadow.setBlurRadius(24)
        shadow.setColor(QColor(0, 0, 0, 140))
        shadow.setOffset(0, 10)
        self._container.setGraphicsEffect(shadow)

        self._title_label = QLabel(TIP_TITLE)
        self._title_label.setObjectName("TipTitle")
        self._message_label = QLabel(TIP_MESSAGE)
        self._message_label.setObjectName("TipMessage")
        self._message_label.setWordWrap(True)

        self._rest_button = self._create_action_button("Rest now")
        self._skip_button = self._create_action_button("Skip")

        actions_row = QHBoxLayout()
        actions_row.setSpacing(10)
        actions_row.addStretch()
        actions_row.addWidget(self._rest_button)
        actions_row.addWidget(self._skip_button)

        layout = QVBoxLayout(self._container)
        layout.setContentsMargins(18, 14, 18, 14)
        layout.setSpacing(6)
        layout.addWidget(self._title_label)
        layout.addWidget(self._message_label)
        layout.addLayout(actions_row)

        base_layout = QHBoxLayout(self)
        base_layout.setContentsMargins(0, 0, 0, 0)
        base_layout.addWidget(self._container)
        self.setMinimumWidth(360)

        self.setStyleSheet(
            """
            QWidget#TipCard {
                background-color: rgba(24, 24, 28, 0.85);
                border-radius: 12px;
                border: 1px solid rgba(255, 255, 255, 0.10);
            }
            QWidget#TipCard QLabel#TipTitle {
                color: white;
                font-weight: bold;
                font-size: 16px;
            }
            QWidget#TipCard QLabel#TipMessage {
                color: rgba(255, 255, 255, 0.85);
            }
            """
        )

        self._rest_button.clicked.connect(self.rested)  # type: ignore[arg-type]
        self._skip_button.clicked.connect(self.skipped)  # type: ignore[arg-type]

    def _create_action_button(self, text: str) -> QPushButton:
        button = QPushButton(text)
        button.setCursor(Qt.CursorShape.PointingHandCursor)
        button.setMinimumSize(QSize(96, 34))
        button.setStyleSheet(
            """
            QPushButton {
                color: white;
                background-color: rgba(255, 255, 255, 0.12);
                border-radius: 8px;
                padding: 4px 12px;
            }
            QPushButton:hover {
                background-color: rgba(255, 255, 255, 0.22);
            }
            """
        )
        return button

    def center_on_screen(self) -> None:
        screen = self._screen or self.screen()
        if screen is None:
            return
        self.adjustSize()
        geometry = screen.availableGeometry()
        x = geometry.center().x() - self.width() // 2
        y = geometry.center().y() - self.height() // 2
        self.move(QPoint(x, y))

    def showEvent(self, event: QShowEvent) -> None:  # noqa: N802
        super().showEvent(event)
        self.visibilityChanged.emit(True)

    def hideEvent(self, event: QHideEvent) -> None:  # noqa: N802
        super().hideEvent(event)
        self.visibilityChanged.emit(False)

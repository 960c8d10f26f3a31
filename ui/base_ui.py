"""기본 UI 컴포넌트와 유틸리티 클래스

컴포넌트는 상태 머신을 직접 건드리지 않고, 생성자로 받은 콜백을 통해서만 입력을 전달합니다.
"""

import tkinter as tk
from tkinter import ttk, messagebox
from typing import Optional
from abc import ABC, abstractmethod


class BaseUIComponent(ABC):
    """UI 컴포넌트의 기본 클래스

    하위 클래스는 create_widgets 에서 self.frame 을 만들고 setup_layout 에서 배치합니다.
    """

    def __init__(self, parent: tk.Widget):
        self.parent = parent
        self.frame: Optional[tk.Widget] = None

    @abstractmethod
    def create_widgets(self):
        pass

    @abstractmethod
    def setup_layout(self):
        pass

    def build(self):
        """위젯 생성과 배치를 한 번에 수행하고 자신을 반환합니다."""
        self.create_widgets()
        self.setup_layout()
        return self

    def destroy(self):
        if self.frame is not None:
            self.frame.destroy()
            self.frame = None


class UIUtils:
    """UI 관련 유틸리티 함수들"""

    @staticmethod
    def create_labeled_entry(parent: tk.Widget, label_text: str,
                             width: int = 20, row: int = 0, column: int = 0,
                             sticky: str = "ew") -> tuple:
        """라벨과 엔트리를 함께 생성합니다."""
        label = ttk.Label(parent, text=label_text)
        label.grid(row=row, column=column, sticky="w", padx=(5, 2), pady=4)

        entry = ttk.Entry(parent, width=width)
        entry.grid(row=row, column=column + 1, sticky=sticky, padx=(2, 5), pady=4)

        return label, entry

    @staticmethod
    def show_error_message(title: str, message: str, parent: Optional[tk.Widget] = None):
        messagebox.showerror(title, message, parent=parent)

    @staticmethod
    def ask_ok_cancel(title: str, message: str, parent: Optional[tk.Widget] = None) -> bool:
        return messagebox.askokcancel(title, message, parent=parent)

    @staticmethod
    def clear_widget_children(widget: tk.Widget):
        """위젯의 모든 자식 위젯을 제거합니다."""
        for child in widget.winfo_children():
            child.destroy()


class StyleManager:
    """UI 스타일을 관리하는 클래스"""

    DEFAULT_FONT = 'Segoe UI'

    COLOR_BG = "#F5F7FA"
    COLOR_PANEL_BG = "#FFFFFF"
    COLOR_TEXT = "#343A40"
    COLOR_TEXT_SUBTLE = "#6C757D"
    COLOR_PRIMARY = "#0D6EFD"
    COLOR_SUCCESS = "#28A745"
    COLOR_ERROR = "#DC3545"
    COLOR_WARNING = "#FFC107"
    COLOR_BORDER = "#CED4DA"

    def __init__(self):
        self.style = ttk.Style()

    def setup_default_styles(self, scale_factor: float = 1.0):
        """기본 스타일들을 설정합니다."""
        base = 10
        s, m, l, xl = (int(size * scale_factor) for size in (base, base + 2, base + 8, base + 20))
        self.style.theme_use('clam')

        self.style.configure('TFrame', background=self.COLOR_BG)
        self.style.configure('Panel.TFrame', background=self.COLOR_PANEL_BG)
        self.style.configure('TLabel', background=self.COLOR_BG, foreground=self.COLOR_TEXT, font=(self.DEFAULT_FONT, m))
        self.style.configure('Panel.TLabel', background=self.COLOR_PANEL_BG, foreground=self.COLOR_TEXT,
                             font=(self.DEFAULT_FONT, m))
        self.style.configure('Subtle.TLabel', background=self.COLOR_PANEL_BG, foreground=self.COLOR_TEXT_SUBTLE,
                             font=(self.DEFAULT_FONT, s))
        self.style.configure('Header.TLabel', background=self.COLOR_BG, foreground=self.COLOR_TEXT,
                             font=(self.DEFAULT_FONT, l, 'bold'))
        self.style.configure('Title.TLabel', background=self.COLOR_BG, foreground=self.COLOR_TEXT,
                             font=(self.DEFAULT_FONT, xl, 'bold'))

        # 상태 표시 스타일
        self.style.configure('Status.Good.TLabel', background=self.COLOR_PANEL_BG, foreground=self.COLOR_SUCCESS,
                             font=(self.DEFAULT_FONT, m, 'bold'))
        self.style.configure('Status.Error.TLabel', background=self.COLOR_PANEL_BG, foreground=self.COLOR_ERROR,
                             font=(self.DEFAULT_FONT, m, 'bold'))
        self.style.configure('Status.Warning.TLabel', background=self.COLOR_WARNING, foreground=self.COLOR_TEXT,
                             font=(self.DEFAULT_FONT, m, 'bold'))

        self.style.configure('TButton', font=(self.DEFAULT_FONT, m, 'bold'),
                             padding=(int(15 * scale_factor), int(10 * scale_factor)), borderwidth=0)
        self.style.map('TButton', background=[('!active', self.COLOR_PRIMARY), ('active', '#0B5ED7')],
                       foreground=[('!active', 'white')])
        self.style.configure('Secondary.TButton', font=(self.DEFAULT_FONT, s, 'bold'), borderwidth=0)
        self.style.map('Secondary.TButton', background=[('!active', self.COLOR_TEXT_SUBTLE),
                                                        ('active', self.COLOR_TEXT)],
                       foreground=[('!active', 'white')])
        self.style.configure('TCheckbutton', background=self.COLOR_BG, foreground=self.COLOR_TEXT,
                             font=(self.DEFAULT_FONT, m))
        self.style.configure('Treeview.Heading', font=(self.DEFAULT_FONT, m, 'bold'))
        self.style.configure('Treeview', rowheight=int(25 * scale_factor), font=(self.DEFAULT_FONT, m))

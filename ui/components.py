"""특화된 UI 컴포넌트들"""

import tkinter as tk
from tkinter import ttk
from typing import Callable, Dict, List, Optional, Tuple

from core.models import HistoryData, ScanResult, Welder
from .base_ui import BaseUIComponent, StyleManager, UIUtils


FOCUS_RECLAIM_DELAY_MS = 100


class ScannerInputComponent(BaseUIComponent):
    """키보드 웨지 스캐너 입력을 받는 숨김 입력 필드

    자동 스캔 모드에서만 포커스를 가져오며, 수동 모드에서는 포커스를 되찾지 않습니다.
    """

    def __init__(self, parent: tk.Widget, on_line: Callable[[str], None], scheduler=None, poll_ms: int = 0):
        super().__init__(parent)
        self.on_line = on_line
        self.scheduler = scheduler
        self.poll_ms = poll_ms
        self.entry: Optional[ttk.Entry] = None
        self.automatic = False
        self._reclaim_job = None
        self._poll_job = None

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent)
        self.entry = ttk.Entry(self.frame, width=1)
        self.entry.bind('<Return>', self._on_return)
        self.entry.bind('<KP_Enter>', self._on_return)
        self.entry.bind('<FocusOut>', self._on_focus_out)

    def setup_layout(self):
        # 화면 밖에 배치합니다.
        self.frame.place(x=-200, y=-200)
        self.entry.pack()

    def _on_return(self, event=None):
        line = self.entry.get()
        self.entry.delete(0, 'end')
        line = line.strip()
        if line:
            self.on_line(line)
        return 'break'

    def set_automatic(self, automatic: bool):
        """자동 스캔 모드를 켜거나 끕니다."""
        self.automatic = automatic
        if automatic:
            self.focus_input()
            self._schedule_poll()
        else:
            self._cancel_jobs()

    def _on_focus_out(self, event=None):
        if not self.automatic:
            return
        if self.scheduler is None:
            self.focus_input()
            return
        if self._reclaim_job:
            self.scheduler.cancel(self._reclaim_job)
        self._reclaim_job = self.scheduler.schedule(FOCUS_RECLAIM_DELAY_MS, self._reclaim_focus)

    def _reclaim_focus(self):
        self._reclaim_job = None
        if self.automatic:
            self.focus_input()

    def _schedule_poll(self):
        if self.poll_ms <= 0 or self.scheduler is None or self._poll_job:
            return
        self._poll_job = self.scheduler.schedule(self.poll_ms, self._poll)

    def _poll(self):
        self._poll_job = None
        if not self.automatic:
            return
        self.focus_input()
        self._schedule_poll()

    def _cancel_jobs(self):
        for attr in ('_reclaim_job', '_poll_job'):
            job = getattr(self, attr)
            if job and self.scheduler is not None:
                self.scheduler.cancel(job)
            setattr(self, attr, None)

    def focus_input(self):
        """입력 필드에 포커스를 설정합니다."""
        if self.entry:
            self.entry.focus_set()

    def teardown(self):
        self.automatic = False
        self._cancel_jobs()
        self.destroy()
        self.entry = None


class ResultOverlay(BaseUIComponent):
    """스캔 처리 결과를 잠시 표시하는 배너"""

    def __init__(self, parent: tk.Widget, scheduler, display_ms: int = 1800):
        super().__init__(parent)
        self.scheduler = scheduler
        self.display_ms = display_ms
        self.label: Optional[tk.Label] = None
        self._hide_job = None

    def create_widgets(self):
        self.frame = tk.Frame(self.parent, bg=StyleManager.COLOR_BG)
        self.label = tk.Label(self.frame, text="", font=(StyleManager.DEFAULT_FONT, 20, 'bold'),
                              bg=StyleManager.COLOR_BG, fg='white', pady=12)

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=(0, 5))
        self.label.pack(fill="x")

    def show(self, result: ScanResult):
        if self.label is None:
            return
        color = StyleManager.COLOR_SUCCESS if result.is_success else StyleManager.COLOR_ERROR
        self.label.config(text=result.message, bg=color)
        if self._hide_job:
            self.scheduler.cancel(self._hide_job)
        self._hide_job = self.scheduler.schedule(self.display_ms, self.hide)

    def hide(self):
        self._hide_job = None
        if self.label is not None:
            self.label.config(text="", bg=StyleManager.COLOR_BG)

    def teardown(self):
        if self._hide_job:
            self.scheduler.cancel(self._hide_job)
        self._hide_job = None
        self.destroy()
        self.label = None


class HistoryPanel(BaseUIComponent):
    """작업장 당일 이력 테이블"""

    COLUMNS = ("Time", "Serial / ID", "Tank Size")

    def __init__(self, parent: tk.Widget):
        super().__init__(parent)
        self.treeview: Optional[ttk.Treeview] = None
        self.count_label: Optional[ttk.Label] = None

    def create_widgets(self):
        self.frame = ttk.LabelFrame(self.parent, text="Today", padding=5)
        self.count_label = ttk.Label(self.frame, text="0", style='Header.TLabel')
        self.count_label.pack(anchor="w")

        tree_frame = ttk.Frame(self.frame)
        tree_frame.pack(fill="both", expand=True)
        self.treeview = ttk.Treeview(tree_frame, columns=self.COLUMNS, show="headings", height=6)
        scrollbar = ttk.Scrollbar(tree_frame, orient="vertical", command=self.treeview.yview)
        self.treeview.configure(yscrollcommand=scrollbar.set)
        for col in self.COLUMNS:
            self.treeview.heading(col, text=col)
            self.treeview.column(col, width=110)
        self.treeview.pack(side="left", fill="both", expand=True)
        scrollbar.pack(side="right", fill="y")

    def setup_layout(self):
        self.frame.pack(fill="both", expand=True, padx=10, pady=5)

    def update_history(self, history: HistoryData):
        if self.treeview is None:
            return
        self.count_label.config(text=f"{history.day_count} today")
        for item in self.treeview.get_children():
            self.treeview.delete(item)
        for record in history.recent_records:
            time_text = record.timestamp[11:19] if len(record.timestamp) >= 19 else record.timestamp
            self.treeview.insert("", "end", values=(time_text, record.serial_or_identifier,
                                                    record.tank_size if record.tank_size is not None else ""))


class WelderPanel(BaseUIComponent):
    """작업장 용접사 명단 (추가/삭제)"""

    def __init__(self, parent: tk.Widget, on_add: Callable[[str], None], on_remove: Callable[[str], None]):
        super().__init__(parent)
        self.on_add = on_add
        self.on_remove = on_remove
        self.list_frame: Optional[ttk.Frame] = None
        self.warning_label: Optional[ttk.Label] = None
        self.entry: Optional[ttk.Entry] = None

    def create_widgets(self):
        self.frame = ttk.LabelFrame(self.parent, text="Welders", padding=5)
        self.warning_label = ttk.Label(self.frame, text="", style='Status.Warning.TLabel')
        self.list_frame = ttk.Frame(self.frame)
        add_frame = ttk.Frame(self.frame)
        add_frame.pack(side="bottom", fill="x", pady=(5, 0))
        self.entry = ttk.Entry(add_frame)
        self.entry.pack(side="left", fill="x", expand=True)
        self.entry.bind('<Return>', lambda e: self._add())
        ttk.Button(add_frame, text="Add", style='Secondary.TButton', command=self._add).pack(side="left", padx=(5, 0))

    def setup_layout(self):
        self.frame.pack(fill="x", padx=10, pady=5)
        self.list_frame.pack(fill="x")

    def _add(self):
        employee_number = self.entry.get().strip()
        if employee_number:
            self.entry.delete(0, 'end')
            self.on_add(employee_number)

    def update_welders(self, welders: Tuple[Welder, ...], warning: Optional[str]):
        if self.list_frame is None:
            return
        if warning:
            self.warning_label.config(text=warning)
            self.warning_label.pack(fill="x", before=self.list_frame)
        else:
            self.warning_label.pack_forget()
        UIUtils.clear_widget_children(self.list_frame)
        for welder in welders:
            row = ttk.Frame(self.list_frame)
            row.pack(fill="x", pady=1)
            ttk.Label(row, text=welder.display_name or welder.employee_number).pack(side="left")
            ttk.Button(row, text="Remove", style='Secondary.TButton',
                       command=lambda user_id=welder.user_id: self.on_remove(user_id)).pack(side="right")


class ManualControlComponent(BaseUIComponent):
    """상태 머신이 제공하는 화면 정보(상태, 상세, 버튼, 입력란, 선택지, 양식, 목록)를 그립니다.

    버튼 콜백은 invoke 를 통해 입력 디스패처로 전달됩니다.
    """

    def __init__(self, parent: tk.Widget, invoke: Callable, on_manual_entry: Callable[[str], None]):
        super().__init__(parent)
        self.invoke = invoke
        self.on_manual_entry = on_manual_entry
        self.body: Optional[ttk.Frame] = None
        self._form_title: Optional[str] = None
        self._form_vars: Dict[str, tk.StringVar] = {}
        self._form_defaults: Dict[str, str] = {}

    def create_widgets(self):
        self.frame = ttk.Frame(self.parent, style='Panel.TFrame', padding=10)
        self.body = ttk.Frame(self.frame, style='Panel.TFrame')

    def setup_layout(self):
        self.frame.pack(fill="both", expand=True, padx=10, pady=5)
        self.body.pack(fill="both", expand=True)

    def render(self, machine, automatic: bool):
        if self.body is None:
            return
        UIUtils.clear_widget_children(self.body)
        if machine is None:
            ttk.Label(self.body, text="This work center is not configured for this terminal.",
                      style='Panel.TLabel').pack(anchor="w")
            return

        ttk.Label(self.body, text=machine.TITLE, style='Header.TLabel').pack(anchor="w")
        status = machine.status_text()
        if status:
            ttk.Label(self.body, text=status, style='Panel.TLabel', wraplength=700).pack(anchor="w", pady=(5, 10))

        self._render_details(machine.details())
        self._render_choices(machine.choices())
        self._render_actions(machine.manual_actions())
        # 키보드 입력이 필요한 항목은 수동 모드에서만 표시합니다.
        if not automatic:
            self._render_entry(machine.entry_prompt())
            self._render_form(machine.form())
        else:
            self._form_title = None
        self._render_list(machine.list_view())

    def _render_details(self, rows: List[Tuple[str, str]]):
        if not rows:
            return
        grid = ttk.Frame(self.body, style='Panel.TFrame')
        grid.pack(fill="x", pady=5)
        for i, (label, value) in enumerate(rows):
            ttk.Label(grid, text=label, style='Subtle.TLabel').grid(row=i, column=0, sticky="w", padx=(0, 10))
            ttk.Label(grid, text=value, style='Panel.TLabel').grid(row=i, column=1, sticky="w")

    def _render_choices(self, choices):
        if not choices:
            return
        prompt, actions = choices
        box = ttk.LabelFrame(self.body, text=prompt, padding=5)
        box.pack(fill="x", pady=5)
        for action in actions:
            ttk.Button(box, text=action.label,
                       command=lambda cb=action.callback: self.invoke(cb)).pack(side="left", padx=3, pady=3)

    def _render_actions(self, actions):
        if not actions:
            return
        bar = ttk.Frame(self.body, style='Panel.TFrame')
        bar.pack(fill="x", pady=5)
        for action in actions:
            ttk.Button(bar, text=action.label,
                       command=lambda cb=action.callback: self.invoke(cb)).pack(side="left", padx=3)

    def _render_entry(self, prompt: Optional[str]):
        if prompt is None:
            return
        row = ttk.Frame(self.body, style='Panel.TFrame')
        row.pack(fill="x", pady=5)
        ttk.Label(row, text=prompt, style='Panel.TLabel').pack(side="left")
        entry = ttk.Entry(row, width=30)
        entry.pack(side="left", padx=5)

        def submit(event=None):
            text = entry.get().strip()
            entry.delete(0, 'end')
            if text:
                self.invoke(self.on_manual_entry, text)

        entry.bind('<Return>', submit)
        ttk.Button(row, text="Submit", command=submit).pack(side="left")

    def _form_var(self, key: str, default: str) -> tk.StringVar:
        """같은 양식을 다시 그릴 때 작업자가 입력 중인 값을 유지합니다."""
        var = self._form_vars.get(key)
        if var is None or self._form_defaults.get(key) != default:
            var = tk.StringVar(value=default)
        self._form_defaults[key] = default
        return var

    def _render_form(self, form_spec):
        if form_spec is None:
            self._form_title = None
            return
        if form_spec.title != self._form_title:
            self._form_vars = {}
            self._form_defaults = {}
        self._form_title = form_spec.title

        box = ttk.LabelFrame(self.body, text=form_spec.title, padding=5)
        box.pack(fill="x", pady=5)
        if form_spec.note:
            ttk.Label(box, text=form_spec.note, style='Status.Warning.TLabel').grid(
                row=0, column=0, columnspan=2, sticky="ew", pady=(0, 5))
        label_maps: Dict[str, Dict[str, str]] = {}
        new_vars: Dict[str, tk.StringVar] = {}
        for row, field in enumerate(form_spec.fields, start=1):
            text = f"{field.label}{' *' if field.required else ''}"
            ttk.Label(box, text=text, style='Panel.TLabel').grid(row=row, column=0, sticky="w", padx=(0, 10), pady=2)
            if field.options:
                labels = {label: value for value, label in field.options}
                label_maps[field.key] = labels
                current = next((label for value, label in field.options if value == field.value), "")
                var = self._form_var(field.key, current)
                widget = ttk.Combobox(box, textvariable=var, values=list(labels), state="readonly", width=30)
            else:
                var = self._form_var(field.key, field.value)
                widget = ttk.Entry(box, textvariable=var, width=32)
            widget.grid(row=row, column=1, sticky="ew", pady=2)
            new_vars[field.key] = var
        self._form_vars = new_vars

        def submit():
            values = {}
            for key, var in self._form_vars.items():
                raw = var.get()
                values[key] = label_maps.get(key, {}).get(raw, raw)
            self.invoke(form_spec.on_submit, values)

        buttons = ttk.Frame(box, style='Panel.TFrame')
        buttons.grid(row=len(form_spec.fields) + 1, column=0, columnspan=2, sticky="e", pady=(5, 0))
        ttk.Button(buttons, text="Save", command=submit).pack(side="right", padx=3)
        if form_spec.on_cancel is not None:
            ttk.Button(buttons, text="Cancel", style='Secondary.TButton',
                       command=lambda: self.invoke(form_spec.on_cancel)).pack(side="right", padx=3)

    def _render_list(self, view):
        if view is None:
            return
        box = ttk.LabelFrame(self.body, text=view.title, padding=5)
        box.pack(fill="both", expand=True, pady=5)
        if not view.items:
            ttk.Label(box, text=view.empty_text, style='Subtle.TLabel').pack(anchor="w")
            return
        for label, callback in view.items:
            row = ttk.Frame(box, style='Panel.TFrame')
            row.pack(fill="x", pady=1)
            ttk.Label(row, text=label, style='Panel.TLabel').pack(side="left")
            if callback is not None:
                ttk.Button(row, text=view.item_action_label, style='Secondary.TButton',
                           command=lambda cb=callback: self.invoke(cb)).pack(side="right")

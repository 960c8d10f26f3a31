import tkinter as tk
from tkinter import ttk, messagebox
import datetime
import os
from typing import Optional

import pygame

from core.coordinator import EVENT_HISTORY, EVENT_MODE, EVENT_RESULT, EVENT_STATE, EVENT_WELDERS, SessionCoordinator
from core.api_client import MesApiClient
from core.dispatch import InputDispatcher, ThreadedRunner, TkScheduler
from core.models import ScanResult, Welder, WorkCenterSession
from core.scanner_device import EVDEV_AVAILABLE, ScannerDeviceSource
from ui.base_ui import StyleManager, UIUtils
from ui.components import HistoryPanel, ManualControlComponent, ResultOverlay, ScannerInputComponent, WelderPanel
from utils.config import ConfigManager
from utils.exceptions import ConfigurationError
from utils.file_handler import ensure_directory_exists, resource_path
from utils.logger import EventLogger


config = ConfigManager()


# #####################################################################
# # 메인 어플리케이션
# #####################################################################

class ProductionWorkerApp:
    """탱크 라인 작업장 단말기 메인 GUI 어플리케이션 클래스입니다."""

    def __init__(self):
        self.root = tk.Tk()
        app_title = f"{config.get('ui.window_title', 'Production Worker')} ({config.get('app.version', 'v1.0.0')})"
        self.root.title(app_title)
        self.root.geometry(config.get('ui.window_geometry', '1400x800'))
        self.root.configure(bg=StyleManager.COLOR_BG)

        self.scale_factor = 1.0
        self.style_manager = StyleManager()
        self.style_manager.setup_default_styles(self.scale_factor)

        self.sound_enabled = config.get('sound.enabled', True)
        self.success_sound = self.error_sound = None
        pygame.init()
        try:
            pygame.mixer.init()
            self.success_sound = pygame.mixer.Sound(resource_path('assets/success.wav'))
            self.error_sound = pygame.mixer.Sound(resource_path('assets/error.wav'))
        except (pygame.error, FileNotFoundError) as e:
            messagebox.showwarning("Sound", f"Could not load sound files: {e}")
            self.success_sound = self.error_sound = None

        self.logger = self._create_logger()

        self.api = MesApiClient(config.get('api.base_url', ''), token=config.get('api.token', ''),
                                timeout=config.get('api.timeout_sec', 10))
        self.scheduler = TkScheduler(self.root)
        self.dispatcher = InputDispatcher()
        self.runner = ThreadedRunner(self.dispatcher)
        self.dispatcher.start_pump(self.scheduler, config.get('scanner.dispatch_poll_ms', 50))

        self.coordinator: Optional[SessionCoordinator] = None
        self.operator_name = ""
        self.scanner_input: Optional[ScannerInputComponent] = None
        self.scanner_device: Optional[ScannerDeviceSource] = None
        self.result_overlay: Optional[ResultOverlay] = None
        self.history_panel: Optional[HistoryPanel] = None
        self.welder_panel: Optional[WelderPanel] = None
        self.manual_panel: Optional[ManualControlComponent] = None

        self.status_message_job = None
        self.clock_job = None

        self._setup_core_ui_structure()
        self.show_operator_input_screen()

        self.root.bind('<Control-MouseWheel>', self.on_ctrl_wheel)
        self.root.protocol("WM_DELETE_WINDOW", self.on_closing)

    def _create_logger(self) -> Optional[EventLogger]:
        if not config.get('logging.enabled', True):
            return None
        log_dir = config.get('logging.log_dir', 'logs')
        if not os.path.isabs(log_dir):
            log_dir = os.path.join(config.base_dir, log_dir)
        ensure_directory_exists(log_dir)
        logger = EventLogger(log_dir, config.get('terminal.work_center_name', ''),
                             log_file_path=config.get('logging.log_file', '') or None)
        logger.log_event('APP_START', {'version': config.get('app.version', '')})
        return logger

    # #################################################################
    # # 화면 구성
    # #################################################################

    def _setup_core_ui_structure(self):
        status_bar = tk.Frame(self.root, bg=StyleManager.COLOR_PANEL_BG, bd=1, relief=tk.SUNKEN)
        status_bar.pack(side=tk.BOTTOM, fill=tk.X)
        self.status_label = tk.Label(status_bar, text="Ready", anchor=tk.W,
                                     bg=StyleManager.COLOR_PANEL_BG, fg=StyleManager.COLOR_TEXT)
        self.status_label.pack(side=tk.LEFT, padx=10, pady=4)
        self.operator_input_frame = ttk.Frame(self.root, style='TFrame')
        self.work_frame = ttk.Frame(self.root, style='TFrame')

    def on_ctrl_wheel(self, event):
        self.scale_factor += 0.1 if event.delta > 0 else -0.1
        self.scale_factor = max(0.7, min(2.5, self.scale_factor))
        self.style_manager.setup_default_styles(self.scale_factor)

    def _clear_main_frames(self):
        if self.operator_input_frame.winfo_ismapped(): self.operator_input_frame.pack_forget()
        if self.work_frame.winfo_ismapped(): self.work_frame.pack_forget()

    def show_operator_input_screen(self):
        self._clear_main_frames()
        self.operator_input_frame.pack(fill=tk.BOTH, expand=True, padx=10, pady=10)
        UIUtils.clear_widget_children(self.operator_input_frame)
        self.operator_input_frame.grid_rowconfigure(0, weight=1)
        self.operator_input_frame.grid_columnconfigure(0, weight=1)
        center_frame = ttk.Frame(self.operator_input_frame, style='TFrame')
        center_frame.grid(row=0, column=0)

        ttk.Label(center_frame, text=config.get('ui.window_title', 'Production Worker'),
                  style='Title.TLabel').pack(pady=(40, 10))
        wc_name = config.get('terminal.work_center_name', '') or "(work center not configured)"
        ttk.Label(center_frame, text=wc_name, style='Header.TLabel').pack(pady=(0, 40))

        form = ttk.Frame(center_frame, style='TFrame')
        form.pack()
        _, self.operator_id_entry = UIUtils.create_labeled_entry(form, "Employee #", width=25, row=0)
        _, self.operator_name_entry = UIUtils.create_labeled_entry(form, "Name", width=25, row=1)
        self.is_welder_var = tk.BooleanVar(value=False)
        ttk.Checkbutton(form, text="I am a welder at this work center",
                        variable=self.is_welder_var).grid(row=2, column=0, columnspan=2, sticky="w", pady=8)

        self.operator_id_entry.bind('<Return>', lambda e: self.operator_name_entry.focus_set())
        self.operator_name_entry.bind('<Return>', self.start_work)
        self.operator_id_entry.focus()
        ttk.Button(center_frame, text="Start Work", command=self.start_work, width=20).pack(pady=40)

    def start_work(self, event=None):
        operator_id = self.operator_id_entry.get().strip()
        operator_name = self.operator_name_entry.get().strip()
        if not operator_id or not operator_name:
            UIUtils.show_error_message("Error", "Please enter your employee number and name.", self.root)
            return
        self.operator_name = operator_name
        if self.logger is not None:
            self.logger.set_operator(operator_name)
            self.logger.log_event('WORK_START', {'operator_id': operator_id})

        session = WorkCenterSession(
            work_center_id=config.get('terminal.work_center_id', ''),
            work_center_name=config.get('terminal.work_center_name', ''),
            asset_id=config.get('terminal.asset_id'),
            production_line_id=config.get('terminal.production_line_id', ''),
            production_line_name=config.get('terminal.production_line_name', ''),
            plant_id=config.get('terminal.plant_id', ''),
            operator_id=operator_id,
            operator_name=operator_name,
            material_queue_for_wc_id=config.get('terminal.material_queue_for_wc_id'),
            external_input=bool(config.get('scanner.start_automatic', True)),
        )
        operator_welder = None
        if self.is_welder_var.get():
            operator_welder = Welder(user_id=operator_id, display_name=operator_name, employee_number=operator_id)

        self.coordinator = SessionCoordinator(
            self.api, self.runner, session, scheduler=self.scheduler, logger=self.logger,
            options=config.get('workflow', {}), operator_welder=operator_welder)
        self.coordinator.add_listener(EVENT_STATE, self._on_state_changed)
        self.coordinator.add_listener(EVENT_RESULT, self._on_result)
        self.coordinator.add_listener(EVENT_HISTORY, self._on_history)
        self.coordinator.add_listener(EVENT_MODE, self._on_mode_changed)
        self.coordinator.add_listener(EVENT_WELDERS, self._on_welders)
        self.dispatcher.set_scan_handler(self.coordinator.handle_line)

        self.show_work_screen()
        self.coordinator.mount()
        self._start_scan_source()

    def show_work_screen(self):
        self._clear_main_frames()
        UIUtils.clear_widget_children(self.work_frame)
        self.work_frame.pack(fill=tk.BOTH, expand=True)

        top_bar = ttk.Frame(self.work_frame, style='Panel.TFrame', padding=(10, 5))
        top_bar.pack(fill=tk.X)
        session = self.coordinator.session
        ttk.Label(top_bar, text=session.work_center_name or "Work Center",
                  style='Header.TLabel').pack(side=tk.LEFT)
        ttk.Label(top_bar, text=f"  {session.production_line_name}", style='Panel.TLabel').pack(side=tk.LEFT)
        ttk.Button(top_bar, text="Change Operator", style='Secondary.TButton',
                   command=self.change_operator).pack(side=tk.RIGHT, padx=5)
        self.mode_button = ttk.Button(top_bar, style='Secondary.TButton', command=self.toggle_input_mode)
        self.mode_button.pack(side=tk.RIGHT, padx=5)
        self.clock_label = ttk.Label(top_bar, text="", style='Panel.TLabel')
        self.clock_label.pack(side=tk.RIGHT, padx=15)
        ttk.Label(top_bar, text=self.operator_name, style='Panel.TLabel').pack(side=tk.RIGHT, padx=15)

        self.result_overlay = ResultOverlay(self.work_frame, self.scheduler,
                                            config.get('workflow.result_display_ms', 1800)).build()

        body = ttk.PanedWindow(self.work_frame, orient=tk.HORIZONTAL)
        body.pack(fill=tk.BOTH, expand=True)
        left = ttk.Frame(body, style='TFrame')
        right = ttk.Frame(body, style='TFrame')
        body.add(left, weight=3)
        body.add(right, weight=1)

        self.manual_panel = ManualControlComponent(left, self.dispatcher.post,
                                                   self.coordinator.submit_manual).build()
        self.history_panel = HistoryPanel(right).build()
        self.welder_panel = WelderPanel(
            right,
            on_add=lambda number: self.dispatcher.post(self.coordinator.add_welder, number),
            on_remove=lambda user_id: self.dispatcher.post(self.coordinator.remove_welder, user_id)).build()

        self._update_mode_button()
        self._update_clock()

    def _start_scan_source(self):
        mode = config.get('scanner.mode', 'wedge')
        if mode == 'device':
            if EVDEV_AVAILABLE:
                try:
                    self.scanner_device = ScannerDeviceSource(self.dispatcher.post_scan,
                                                              config.get('scanner.device_path', ''),
                                                              logger=self.logger)
                    self.scanner_device.start()
                    return
                except (ConfigurationError, OSError) as e:
                    self.scanner_device = None
                    self.show_status_message(f"Scanner device unavailable: {e}", StyleManager.COLOR_ERROR)
            else:
                self.show_status_message("evdev is not available, using keyboard scanner input",
                                         StyleManager.COLOR_ERROR)
        self.scanner_input = ScannerInputComponent(self.work_frame, self.dispatcher.post_scan, self.scheduler,
                                                   config.get('scanner.focus_poll_ms', 0)).build()
        self.scanner_input.set_automatic(self.coordinator.session.external_input)

    def _stop_scan_source(self):
        if self.scanner_device is not None:
            self.scanner_device.stop()
            self.scanner_device = None
        if self.scanner_input is not None:
            self.scanner_input.teardown()
            self.scanner_input = None

    # #################################################################
    # # 코디네이터 이벤트
    # #################################################################

    def _on_state_changed(self):
        if self.manual_panel is None or self.coordinator is None:
            return
        self.manual_panel.render(self.coordinator.machine, self.coordinator.session.external_input)
        if self.welder_panel is not None:
            self.welder_panel.update_welders(self.coordinator.session.welders, self.coordinator.welder_warning)
        if self.scanner_input is not None and self.coordinator.session.external_input:
            self.scanner_input.focus_input()

    def _on_result(self, result: ScanResult):
        if self.result_overlay is not None:
            self.result_overlay.show(result)
        self._play_sound(result.is_success)

    def _on_history(self, history):
        if self.history_panel is not None:
            self.history_panel.update_history(history)

    def _on_mode_changed(self, automatic: bool):
        if self.scanner_input is not None:
            self.scanner_input.set_automatic(automatic)
        self._update_mode_button()
        self._on_state_changed()
        self.show_status_message("Automatic scan mode" if automatic else "Manual input mode")

    def _on_welders(self, welders):
        if self.welder_panel is not None:
            self.welder_panel.update_welders(welders, self.coordinator.welder_warning)

    def toggle_input_mode(self):
        if self.coordinator is None:
            return
        self.dispatcher.post(self.coordinator.set_external_input, not self.coordinator.session.external_input)

    def _update_mode_button(self):
        if self.coordinator is None or not hasattr(self, 'mode_button'):
            return
        automatic = self.coordinator.session.external_input
        self.mode_button.config(text="Automatic Scan: ON" if automatic else "Automatic Scan: OFF")

    def _play_sound(self, success: bool):
        if not self.sound_enabled:
            return
        sound = self.success_sound if success else self.error_sound
        if sound:
            sound.play()

    def _update_clock(self):
        if not self.root.winfo_exists(): return
        if hasattr(self, 'clock_label') and self.clock_label.winfo_exists():
            self.clock_label['text'] = datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        self.clock_job = self.root.after(1000, self._update_clock)

    def show_status_message(self, message: str, color: Optional[str] = None, duration: int = 4000):
        if not self.root.winfo_exists(): return
        if self.status_message_job: self.root.after_cancel(self.status_message_job)
        self.status_label['text'], self.status_label['fg'] = message, color or StyleManager.COLOR_TEXT
        self.status_message_job = self.root.after(duration, self._reset_status_message)

    def _reset_status_message(self):
        self.status_message_job = None
        if self.status_label.winfo_exists():
            self.status_label['text'], self.status_label['fg'] = "Ready", StyleManager.COLOR_TEXT

    # #################################################################
    # # 종료 / 작업자 변경
    # #################################################################

    def _cancel_all_jobs(self):
        for job_attr in ['clock_job', 'status_message_job']:
            job_id = getattr(self, job_attr, None)
            if job_id:
                self.root.after_cancel(job_id)
                setattr(self, job_attr, None)

    def _end_work(self):
        self._stop_scan_source()
        if self.result_overlay is not None:
            self.result_overlay.teardown()
        self.result_overlay = self.history_panel = self.welder_panel = self.manual_panel = None
        if self.coordinator is not None:
            self.coordinator.unmount()
            self.dispatcher.set_scan_handler(None)
            self.coordinator = None
        if self.logger is not None and self.operator_name:
            self.logger.log_event('WORK_END')
        self.operator_name = ""

    def change_operator(self):
        if messagebox.askyesno("Change Operator", "Sign out and change operator?"):
            self._cancel_all_jobs()
            self._end_work()
            self.show_operator_input_screen()

    def on_closing(self):
        if UIUtils.ask_ok_cancel("Exit", "Close the production terminal?", self.root):
            self._cancel_all_jobs()
            self._end_work()
            self.dispatcher.stop_pump()
            if self.logger is not None:
                self.logger.log_event('APP_EXIT')
                self.logger.stop_logger()
            pygame.quit()
            self.root.destroy()

    def run(self):
        self.root.mainloop()


if __name__ == "__main__":
    app = ProductionWorkerApp()
    app.run()

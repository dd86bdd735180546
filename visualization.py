# visualization.py
"""
Handles the visualization of the particle simulation using Pygame.

The visualizer is a read-only consumer: it draws the current particle
positions, the palette and the attraction matrix, and never modifies
simulation state.
"""
import logging
import math
import pygame
import numpy as np
from particle import ParticleSystem
from constants import (
    BACKGROUND_COLOR, CAMERA_AUTO_ROTATE, CAMERA_DISTANCE, CAMERA_KEY_ROTATE,
    DEFAULT_PARTICLE_RADIUS, FPS, FULLSCREEN, MOTION_BLUR_ALPHA,
    UI_BACKGROUND_ALPHA, UI_PANEL_WIDTH, WINDOW_SIZE
)
from typing import Dict, Optional, Tuple

# Forward reference for type hinting to avoid circular import
from typing import TYPE_CHECKING
if TYPE_CHECKING:
    from simulation import Simulation


# --- Data Contracts ---
#
# project_points(positions, yaw, pitch, width, height, camera_distance) -> (screen, scale):
#   - Inputs:
#     - positions: float (N, 3) domain coordinates.
#     - yaw, pitch: camera orbit angles in radians.
#     - width, height: size of the target surface in pixels.
#   - Outputs:
#     - screen: float (N, 2) pixel coordinates. The domain centre maps to
#       the surface centre; +y points up on screen.
#     - scale: float (N,) perspective factor, > 1 for points nearer than
#       the domain centre.
#
# class Visualizer:
#   - __init__(self, palette: np.ndarray, fullscreen: bool = FULLSCREEN,
#              sim_params: Optional[dict] = None):
#     - Inputs:
#       - palette: (C, 4) RGBA floats in [0, 1] from the ParticleSystem.
#       - sim_params: scalar parameters shown in the UI panel.
#     - Side Effects: Initializes Pygame and creates a display surface.
#
#   - draw(self, particles: ParticleSystem, simulation: "Simulation") -> bool:
#     - Outputs:
#       - bool: False if the user has quit, True otherwise.
#     - Side Effects: Renders particles and UI to the screen and handles
#       Pygame events. Only camera state is changed by user input.


def project_points(
    positions: np.ndarray,
    yaw: float,
    pitch: float,
    width: int,
    height: int,
    camera_distance: float = CAMERA_DISTANCE,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Perspective-projects domain coordinates onto a 2D surface.
    """
    x = positions[:, 0]
    y = positions[:, 1]
    z = positions[:, 2]

    # Orbit around the vertical axis, then tilt.
    cos_yaw, sin_yaw = math.cos(yaw), math.sin(yaw)
    x_r = x * cos_yaw + z * sin_yaw
    z_r = -x * sin_yaw + z * cos_yaw

    cos_pitch, sin_pitch = math.cos(pitch), math.sin(pitch)
    y_r = y * cos_pitch - z_r * sin_pitch
    z_r = y * sin_pitch + z_r * cos_pitch

    scale = camera_distance / (camera_distance + z_r)
    half_extent = 0.45 * min(width, height)

    screen = np.empty((positions.shape[0], 2), dtype=np.float64)
    screen[:, 0] = width / 2 + x_r * half_extent * scale
    screen[:, 1] = height / 2 - y_r * half_extent * scale
    return screen, scale


def palette_to_colors(palette: np.ndarray) -> list:
    """Converts (C, 4) RGBA floats in [0, 1] into pygame colors."""
    rgba = np.clip(np.rint(np.asarray(palette) * 255), 0, 255).astype(int)
    return [pygame.Color(int(r), int(g), int(b), int(a)) for r, g, b, a in rgba]


class Visualizer:
    """
    Renders the particle system state and a read-only information panel.
    """
    def __init__(self, palette: np.ndarray, fullscreen: bool = FULLSCREEN, sim_params: Optional[Dict] = None):
        """
        Initializes Pygame and the display window.
        """
        pygame.init()
        pygame.font.init()

        if fullscreen:
            display_info = pygame.display.Info()
            width, height = display_info.current_w, display_info.current_h
            self.screen = pygame.display.set_mode((width, height), pygame.FULLSCREEN)
        else:
            # Fallback to a fixed size if not fullscreen
            width, height = WINDOW_SIZE
            self.screen = pygame.display.set_mode((width, height))

        # The simulation area is the total width minus the UI panel
        self.sim_width = width - UI_PANEL_WIDTH
        self.sim_height = height

        # Create a dedicated surface for the simulation area
        self.sim_surface = pygame.Surface((self.sim_width, self.sim_height))
        # Create a surface for the motion blur effect. This surface will be blitted
        # onto the main simulation surface each frame to create fading trails.
        self.blur_surface = pygame.Surface((self.sim_width, self.sim_height), pygame.SRCALPHA)
        self.blur_surface.fill((BACKGROUND_COLOR[0], BACKGROUND_COLOR[1], BACKGROUND_COLOR[2], MOTION_BLUR_ALPHA))

        # Create a surface for the UI panel background
        self.ui_panel_surface = pygame.Surface((UI_PANEL_WIDTH, self.sim_height), pygame.SRCALPHA)
        self.ui_panel_surface.fill((40, 40, 40, UI_BACKGROUND_ALPHA))

        pygame.display.set_caption("Particle Life 3D")
        self.clock = pygame.time.Clock()

        self.colors = palette_to_colors(palette)
        color_count = len(self.colors)

        # --- Camera ---
        self.yaw = 0.0
        self.pitch = 0.35
        self.auto_rotate = True

        # Use a cleaner, sans-serif font. Pygame will fall back if 'Segoe UI' is not found.
        try:
            self.font_title = pygame.font.SysFont("Segoe UI", 16, bold=True)
            self.font_main = pygame.font.SysFont("Segoe UI", 14)
            self.font_main_bold = pygame.font.SysFont("Segoe UI", 14, bold=True)
        except pygame.error:
            logging.warning("Segoe UI font not found, falling back to default sans-serif.")
            self.font_title = pygame.font.SysFont(None, 20, bold=True)
            self.font_main = pygame.font.SysFont(None, 18)
            self.font_main_bold = pygame.font.SysFont(None, 18, bold=True)

        self.label_margin = 20 # Space for the colored circle labels
        # Position the matrix inside the UI panel
        self.matrix_pos = (self.sim_width + 30, 10 + self.label_margin)
        self.cell_size = max(16, min(40, (UI_PANEL_WIDTH - 60) // max(color_count, 1) - 2))
        self.cell_padding = 2
        self.label_circle_radius = max(4, self.cell_size // 5)
        self.hovered_cell: Optional[Tuple[int, int]] = None

        matrix_pixel_size = color_count * (self.cell_size + self.cell_padding) - self.cell_padding
        self.panel_width = max(matrix_pixel_size, UI_PANEL_WIDTH - 60)
        self.params_top = self.matrix_pos[1] + matrix_pixel_size + 20

        # --- UI Color Palette ---
        self.text_color_title = (255, 255, 255)
        self.text_color_key = (200, 200, 200)   # Brighter grey for keys
        self.text_color_value = (255, 255, 255) # Pure white for values
        self.param_box_color = (60, 60, 60, 160) # Slightly lighter for individual boxes
        self.param_box_spacing = 4 # Vertical pixels between each parameter box

        # Store simulation parameters for display
        self.sim_params = sim_params if sim_params is not None else {}

        logging.info(f"Visualizer initialized with Pygame display ({width}x{height}).")

    def _get_matrix_cell_from_pos(self, pos: Tuple[int, int], matrix_shape: Tuple[int, int]) -> Optional[Tuple[int, int]]:
        """
        Converts a screen position to matrix cell coordinates if hovering over the matrix.
        """
        mx, my = self.matrix_pos
        rows, cols = matrix_shape
        for r in range(rows):
            for c in range(cols):
                cell_x = mx + c * (self.cell_size + self.cell_padding)
                cell_y = my + r * (self.cell_size + self.cell_padding)
                cell_rect = pygame.Rect(cell_x, cell_y, self.cell_size, self.cell_size)
                if cell_rect.collidepoint(pos):
                    return (r, c)
        return None

    def _draw_interaction_matrix(self, simulation: "Simulation"):
        """Renders the attraction matrix, its labels, and highlights the hovered cell."""
        matrix = simulation.interaction_matrix
        rows, cols = matrix.shape

        # --- Draw Labels ---
        for i in range(rows): # Row labels (left side): the particle's own color
            center_y = self.matrix_pos[1] + i * (self.cell_size + self.cell_padding) + self.cell_size / 2
            center_x = self.matrix_pos[0] - self.label_margin / 2
            pygame.draw.circle(self.screen, self.colors[i], (center_x, center_y), self.label_circle_radius)

        for i in range(cols): # Column labels (top side): the other particle's color
            center_x = self.matrix_pos[0] + i * (self.cell_size + self.cell_padding) + self.cell_size / 2
            center_y = self.matrix_pos[1] - self.label_margin / 2
            pygame.draw.circle(self.screen, self.colors[i], (center_x, center_y), self.label_circle_radius)

        # --- Draw Matrix Cells ---
        for r in range(rows):
            for c in range(cols):
                value = matrix[r, c]

                # Green for attraction, Red for repulsion
                color_intensity = int(200 * abs(value))
                if value > 0:
                    bg_color = (0, color_intensity, 0)
                elif value < 0:
                    bg_color = (color_intensity, 0, 0)
                else:
                    bg_color = (50, 50, 50)

                cell_x = self.matrix_pos[0] + c * (self.cell_size + self.cell_padding)
                cell_y = self.matrix_pos[1] + r * (self.cell_size + self.cell_padding)
                cell_rect = pygame.Rect(cell_x, cell_y, self.cell_size, self.cell_size)

                pygame.draw.rect(self.screen, bg_color, cell_rect)

                if self.hovered_cell == (r, c):
                    pygame.draw.rect(self.screen, (255, 255, 0), cell_rect, 2) # Yellow border

                # Values only fit in the larger cells
                if self.cell_size >= 32:
                    text_surf = self.font_main.render(f"{value:.2f}", True, self.text_color_title)
                    text_rect = text_surf.get_rect(center=cell_rect.center)
                    self.screen.blit(text_surf, text_rect)

    def _draw_simulation_parameters(self, simulation: "Simulation"):
        """Renders simulation parameters in a list of individual, transparent boxes."""
        param_name_map = {
            "seed": "Seed",
            "particle_count": "Particle Count",
            "color_count": "Colors",
            "dt": "Delta Time",
            "beta": "Beta",
            "friction": "Friction",
            "matrix_policy": "Matrix Policy",
            "wrap_mode": "Wrap Mode",
        }
        entries = dict(self.sim_params)
        entries["tick"] = simulation.tick
        entries["fps"] = self.clock.get_fps()
        if self.hovered_cell:
            r, c = self.hovered_cell
            entries["hovered"] = f"{r} -> {c}: {simulation.interaction_matrix[r, c]:+.2f}"

        # --- Layout Configuration ---
        box_v_padding = 8 # Vertical padding inside each box
        line_height = self.font_main.get_linesize()
        key_value_gap = 20

        panel_x = self.matrix_pos[0]
        panel_width = self.panel_width
        current_y = self.params_top

        # Define column widths and positions
        key_max_width = (panel_width - key_value_gap) / 2 - box_v_padding
        value_max_width = key_max_width
        key_column_right_x = panel_x + box_v_padding + key_max_width
        value_column_left_x = key_column_right_x + key_value_gap

        for key, value in entries.items():
            display_key = param_name_map.get(key, key.replace('_', ' ').title())
            display_value = f"{value:.3f}" if isinstance(value, float) else str(value)

            key_surfs = self._render_text_wrapped(display_key, self.font_main_bold, key_max_width, self.text_color_key)
            value_surfs = self._render_text_wrapped(display_value, self.font_main, value_max_width, self.text_color_value)

            num_lines = max(len(key_surfs), len(value_surfs))
            box_height = num_lines * line_height + (box_v_padding * 2)

            box_rect = pygame.Rect(panel_x, current_y, panel_width, box_height)
            pygame.draw.rect(self.screen, self.param_box_color, box_rect, border_radius=6)

            text_start_y = current_y + box_v_padding

            line_y = text_start_y
            for surf in key_surfs:
                rect = surf.get_rect(topright=(key_column_right_x, line_y))
                self.screen.blit(surf, rect)
                line_y += line_height

            line_y = text_start_y
            for surf in value_surfs:
                rect = surf.get_rect(topleft=(value_column_left_x, line_y))
                self.screen.blit(surf, rect)
                line_y += line_height

            current_y += box_height + self.param_box_spacing

    def _render_text_wrapped(
        self, text: str, font: pygame.font.Font, max_width: int, color: tuple
    ) -> list:
        """
        Renders text, wrapping it to a new line if it exceeds max_width.
        Returns a list of rendered surfaces, one for each line.
        """
        words = text.split(' ')
        lines = []
        current_line = ""

        for word in words:
            test_line = f"{current_line} {word}".strip()
            if font.size(test_line)[0] <= max_width:
                current_line = test_line
            else:
                lines.append(current_line)
                current_line = word

        lines.append(current_line)

        return [font.render(line, True, color) for line in lines if line]

    def _handle_events(self) -> bool:
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                logging.info("Quit event received. Shutting down visualizer.")
                return False

            if event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    logging.info("ESC key pressed. Shutting down visualizer.")
                    return False
                if event.key == pygame.K_SPACE:
                    self.auto_rotate = not self.auto_rotate
                    logging.debug(f"Camera auto-rotate {'on' if self.auto_rotate else 'off'}.")

        # Held keys orbit the camera.
        keys = pygame.key.get_pressed()
        if keys[pygame.K_LEFT]:
            self.yaw -= CAMERA_KEY_ROTATE
        if keys[pygame.K_RIGHT]:
            self.yaw += CAMERA_KEY_ROTATE
        if keys[pygame.K_UP]:
            self.pitch = min(self.pitch + CAMERA_KEY_ROTATE, math.pi / 2)
        if keys[pygame.K_DOWN]:
            self.pitch = max(self.pitch - CAMERA_KEY_ROTATE, -math.pi / 2)
        if self.auto_rotate:
            self.yaw += CAMERA_AUTO_ROTATE
        return True

    def draw(self, particles: ParticleSystem, simulation: "Simulation") -> bool:
        """
        Draws all particles and UI, and handles events.

        Returns:
            bool: False if the simulation should exit, True otherwise.
        """
        mouse_pos = pygame.mouse.get_pos()
        self.hovered_cell = self._get_matrix_cell_from_pos(mouse_pos, simulation.interaction_matrix.shape)

        if not self._handle_events():
            return False

        # 1. Apply motion blur: fade the previous frame to leave short trails.
        self.sim_surface.blit(self.blur_surface, (0, 0))

        # 2. Project and draw particles far-to-near so nearer ones overlap.
        screen_pos, scale = project_points(
            particles.positions, self.yaw, self.pitch, self.sim_width, self.sim_height
        )
        draw_order = np.argsort(scale)
        colors = particles.colors
        for i in draw_order:
            radius = max(1, int(round(DEFAULT_PARTICLE_RADIUS * scale[i])))
            pygame.draw.circle(
                self.sim_surface,
                self.colors[colors[i]],
                (int(screen_pos[i, 0]), int(screen_pos[i, 1])),
                radius
            )

        # 3. Blit the simulation surface onto the main screen at (0, 0)
        self.screen.blit(self.sim_surface, (0, 0))

        # 4. Draw the UI panel background and then the UI elements on top
        self.screen.blit(self.ui_panel_surface, (self.sim_width, 0))
        self._draw_interaction_matrix(simulation)
        self._draw_simulation_parameters(simulation)

        pygame.display.flip()
        self.clock.tick(FPS)
        return True

    def close(self):
        """Shuts down Pygame."""
        pygame.font.quit()
        pygame.quit()

import pygame

from minesweeper_game import MINE

BG = (15, 15, 20)
TEXT = (240, 240, 240)
DIM = (200, 200, 200)
HIGHLIGHT = (80, 140, 255)
PROGRESS = (40, 90, 200)
HIDDEN = (55, 55, 70)
OPEN = (30, 30, 38)
FLAG = (255, 190, 40)
BOOM = (255, 60, 60)
VIEWPORT = (120, 220, 120)

NUMBER_COLORS = {
    1: (90, 160, 255),
    2: (90, 200, 120),
    3: (255, 110, 110),
    4: (180, 120, 255),
    5: (255, 160, 80),
    6: (80, 220, 220),
    7: (230, 230, 230),
    8: (160, 160, 160),
}


def draw_text_centered(screen, font, text, color, y):
    surf = font.render(text, True, color)
    screen.blit(surf, (screen.get_width() / 2 - surf.get_width() / 2, y))


def draw_option(screen, font, rect, label, highlighted, progress):
    # Progress fills the box left to right while the eyes are held closed.
    pygame.draw.rect(screen, OPEN, rect, border_radius=8)
    if highlighted and progress > 0:
        fill = pygame.Rect(rect.x, rect.y, int(rect.width * progress), rect.height)
        pygame.draw.rect(screen, PROGRESS, fill, border_radius=8)
    border = HIGHLIGHT if highlighted else (90, 90, 100)
    pygame.draw.rect(screen, border, rect, 5 if highlighted else 2, border_radius=8)
    text = font.render(label, True, TEXT if highlighted else DIM)
    screen.blit(text, (rect.centerx - text.get_width() / 2, rect.centery - text.get_height() / 2))


def draw_option_list(screen, font, labels, highlighted_label, progress, top):
    w = screen.get_width()
    box_h = 64
    for i, label in enumerate(labels):
        rect = pygame.Rect(60, top + i * (box_h + 14), w - 120, box_h)
        draw_option(screen, font, rect, label, label == highlighted_label, progress)


def draw_board(screen, font, state, top, bottom):
    board = state.board
    rows, cols = board["rows"], board["cols"]
    w = screen.get_width()
    cell = min((w - 40) / cols, (bottom - top) / rows)
    x0 = (w - cell * cols) / 2
    y0 = top

    def cell_rect(r, c):
        return pygame.Rect(x0 + c * cell, y0 + r * cell, cell, cell)

    for r in range(rows):
        for c in range(cols):
            rect = cell_rect(r, c)
            value = board["board"][r][c]
            if board["revealed"][r][c]:
                pygame.draw.rect(screen, BOOM if value == MINE else OPEN, rect)
                if value > 0:
                    txt = font.render(str(value), True, NUMBER_COLORS[value])
                    screen.blit(txt, (rect.centerx - txt.get_width() / 2, rect.centery - txt.get_height() / 2))
            else:
                pygame.draw.rect(screen, HIDDEN, rect)
                if board["flagged"][r][c]:
                    pygame.draw.circle(screen, FLAG, rect.center, int(cell * 0.25))
            pygame.draw.rect(screen, BG, rect, 1)

    # Play area outline, then row / column / cell highlight on top of it.
    vp = state.viewport
    if vp is not None:
        area = cell_rect(vp.start_row, vp.start_col).union(cell_rect(vp.end_row, vp.end_col))
        pygame.draw.rect(screen, VIEWPORT, area, 3)

    c0 = vp.start_col if vp is not None else 0
    c1 = vp.end_col if vp is not None else cols - 1

    if state.selected_row is not None:
        band = cell_rect(state.selected_row, c0).union(cell_rect(state.selected_row, c1))
        pygame.draw.rect(screen, DIM, band, 2)

    if state.highlight_row is not None:
        band = cell_rect(state.highlight_row, c0).union(cell_rect(state.highlight_row, c1))
        if state.progress > 0:
            fill = pygame.Rect(band.x, band.y, int(band.width * state.progress), band.height)
            pygame.draw.rect(screen, PROGRESS, fill)
        pygame.draw.rect(screen, HIGHLIGHT, band, 4)

    if state.highlight_cell is not None:
        rect = cell_rect(*state.highlight_cell)
        if state.progress > 0:
            fill = pygame.Rect(rect.x, rect.bottom - rect.height * state.progress, rect.width, rect.height * state.progress)
            pygame.draw.rect(screen, PROGRESS, fill)
        pygame.draw.rect(screen, HIGHLIGHT, rect, 4)


def draw_lock(screen, font_big, state, top):
    # Three dots, three dashes, three dots; completed steps stay filled.
    w = screen.get_width()
    size = (w - 160) / 3
    for i in range(state.lock_steps):
        r, c = divmod(i, 3)
        rect = pygame.Rect(80 + c * size, top + r * size, size - 16, size - 16)
        pygame.draw.rect(screen, OPEN, rect, border_radius=10)
        if i < state.lock_step:
            pygame.draw.rect(screen, PROGRESS, rect, border_radius=10)
        elif i == state.lock_step and state.lock_progress > 0:
            h = rect.height * state.lock_progress
            pygame.draw.rect(screen, PROGRESS, pygame.Rect(rect.x, rect.bottom - h, rect.width, h), border_radius=10)
        pygame.draw.rect(screen, HIGHLIGHT if i == state.lock_step else (90, 90, 100), rect, 3, border_radius=10)
        symbol = "-" if 3 <= i < 6 else "."
        txt = font_big.render(symbol, True, TEXT)
        screen.blit(txt, (rect.centerx - txt.get_width() / 2, rect.centery - txt.get_height() / 2))


def draw(screen, state, font_big, font_small):
    """
    Draws one RenderState. Nothing here changes app state.
    """
    screen.fill(BG)
    draw_text_centered(screen, font_big, state.title, TEXT, 24)
    h = screen.get_height()

    if state.mode == "locked":
        draw_lock(screen, font_big, state, 140)
    elif state.board is not None:
        board_bottom = h - 90 - 78 * len(state.actions)
        draw_board(screen, font_small, state, 110, board_bottom)
        draw_option_list(screen, font_small, state.actions, state.highlight_action, state.progress, board_bottom + 20)
    else:
        highlighted = state.targets[state.highlight] if state.targets else None
        draw_option_list(screen, font_small, state.targets, highlighted, state.progress, 130)

    st = font_small.render(state.status, True, (220, 220, 220))
    screen.blit(st, (10, h - 30))

import logging

import pygame

import config as cfg
import view
from blink_app import BlinkApp
from face_controller import FaceController, now_ms
from session_store import JsonFileStore


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    pygame.init()
    screen = pygame.display.set_mode((cfg.WIN_W, cfg.WIN_H))
    pygame.display.set_caption(cfg.TITLE)
    clock = pygame.time.Clock()
    font_big = pygame.font.SysFont(None, 64)
    font_small = pygame.font.SysFont(None, 30)

    face = FaceController(cam_index=0)
    app = BlinkApp(JsonFileStore(cfg.STORE_PATH))

    last_face_seen = now_ms()
    running = True

    while running:
        clock.tick(cfg.FPS)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            if event.type == pygame.KEYDOWN and event.key == pygame.K_q:
                running = False

        ok, sample = face.read_sample()
        now = now_ms()

        if not ok:
            app.status = "Webcam read failed."
        elif sample is None:
            # Any dwell in progress is dropped as soon as the face goes missing.
            app.on_face_lost()
            if (now - last_face_seen) > cfg.FACE_LOSS_GRACE_SECONDS * 1000:
                app.status = "No face detected. Center yourself."
        else:
            last_face_seen = now
            app.status = "Close your eyes on the highlighted option to select it."
            app.on_eye_sample(sample)

        app.on_tick(now)

        view.draw(screen, app.render_state(), font_big, font_small)
        pygame.display.flip()

    face.release()
    pygame.quit()


if __name__ == "__main__":
    main()

"""
Human Play Mode
================

Play Fish On interactively in a small pygame window driven by the real clock.
Progress is saved between runs.

Controls:
    - Space: Cast line (or take the shot in timed-window mode)
    - Mouse / Up / Down: Move the catcher zone
    - C: Collect passive income
    - 1-4: Buy upgrades
    - T: Add 50 test tokens
    - R: Reset all progress
    - ESC: Quit

Usage:
    python -m tools.play_human [--seed SEED] [--mode MODE] [--save-dir DIR]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Tuple

try:
    import pygame
    PYGAME_AVAILABLE = True
except ImportError:
    PYGAME_AVAILABLE = False

from fishon.core.catch_machine import CatchPhase
from fishon.core.config_loader import CatchMode, GameConfig, load_config
from fishon.core.game import FishingSession
from fishon.core.storage import JsonFileStorage


def _hex_to_rgb(color: str) -> Tuple[int, int, int]:
    color = color.lstrip("#")
    return (int(color[0:2], 16), int(color[2:4], 16), int(color[4:6], 16))


class FishOnRenderer:
    """Draws the HUD, the catch track and the shop strip."""

    def __init__(self, config: GameConfig, window_width: int, window_height: int):
        self._config = config
        self._window_width = window_width
        self._window_height = window_height

        self._sky = (255, 214, 170)
        self._water = (40, 110, 170)
        self._track_bg = (20, 60, 100)
        self._zone = (120, 220, 140)
        self._window = (255, 220, 90)
        self._text = (250, 250, 250)
        self._text_dim = (190, 210, 230)

        pygame.font.init()
        self._font = pygame.font.SysFont("arial", 18)
        self._font_big = pygame.font.SysFont("arial", 32, bold=True)

        # Vertical catch track on the right
        self._track = pygame.Rect(window_width - 110, 120, 60, window_height - 260)

    def _blit(self, screen, text: str, pos, big: bool = False, color=None) -> None:
        font = self._font_big if big else self._font
        screen.blit(font.render(text, True, color or self._text), pos)

    def _track_y(self, position: float) -> int:
        return int(self._track.top + position / 100.0 * self._track.height)

    def render(self, screen, session: FishingSession) -> None:
        store = session.store
        info = session.get_info()

        screen.fill(self._water)
        pygame.draw.rect(screen, self._sky, (0, 0, self._window_width, 90))

        progress = store.level_progress()
        self._blit(screen, f"Lv {info['level']}  ({progress.current}/{progress.required} XP)", (16, 10), color=(80, 60, 40))
        self._blit(screen, f"Tokens: {info['tokens']}", (16, 34), color=(80, 60, 40))
        energy_line = f"Energy: {info['energy']}/{info['max_energy']}"
        if info["next_energy_in"] is not None:
            minutes, seconds = divmod(int(info["next_energy_in"]), 60)
            energy_line += f"  (+1 in {minutes}:{seconds:02d})"
        self._blit(screen, energy_line, (16, 58), color=(80, 60, 40))
        self._blit(screen, f"Income {info['hourly_income']}/h  pending {info['pending_income']}",
                   (self._window_width // 2, 10), color=(80, 60, 40))
        self._blit(screen, f"Catches {info['total_catches']}  species {info['unique_species']}",
                   (self._window_width // 2, 34), color=(80, 60, 40))

        self._draw_phase(screen, session)
        self._draw_shop(screen, session)

    def _draw_phase(self, screen, session: FishingSession) -> None:
        phase = session.catch.phase
        attempt = session.catch.attempt
        center = (40, self._window_height // 2 - 40)

        if phase == CatchPhase.IDLE:
            self._blit(screen, "Press SPACE to cast", center, big=True)
        elif phase == CatchPhase.UNAVAILABLE:
            self._blit(screen, "Out of energy!", center, big=True)
        elif phase == CatchPhase.CASTING:
            self._blit(screen, "Casting...", center, big=True)
        elif phase == CatchPhase.WAITING:
            self._blit(screen, "Waiting for a bite", center, big=True)
        elif phase == CatchPhase.SUCCESS and session.results:
            fish = session.results[-1].fish
            self._blit(screen, f"{fish.name}!  +{fish.token_reward} tokens  +{fish.xp} XP", center, big=True)
        elif phase == CatchPhase.FAILURE:
            self._blit(screen, "Got away!", center, big=True)

        if phase != CatchPhase.ENGAGING or attempt is None:
            return

        fish = attempt.fish
        self._blit(screen, f"{fish.name} ({fish.rarity.label})", center, big=True)
        pygame.draw.rect(screen, self._track_bg, self._track, border_radius=8)

        if session.catch.mode == CatchMode.TRACKING:
            half = attempt.zone_radius
            top = self._track_y(max(0.0, attempt.catcher - half))
            bottom = self._track_y(min(100.0, attempt.catcher + half))
            pygame.draw.rect(screen, self._zone, (self._track.left + 4, top, self._track.width - 8, bottom - top),
                             border_radius=6)
            # Progress bar
            bar = pygame.Rect(40, self._window_height // 2 + 10, 300, 18)
            pygame.draw.rect(screen, self._track_bg, bar, border_radius=6)
            fill = bar.copy()
            fill.width = int(bar.width * attempt.progress / 100.0)
            pygame.draw.rect(screen, self._zone, fill, border_radius=6)
            self._blit(screen, f"{attempt.progress:.0f}%", (bar.right + 10, bar.top - 2))
        else:
            top = self._track_y(max(0.0, attempt.window_center - attempt.window_half_width))
            bottom = self._track_y(min(100.0, attempt.window_center + attempt.window_half_width))
            pygame.draw.rect(screen, self._window, (self._track.left + 4, top, self._track.width - 8, bottom - top),
                             border_radius=6)
            self._blit(screen, "SPACE when the fish is in the window", (40, self._window_height // 2 + 10))

        y = self._track_y(attempt.indicator)
        pygame.draw.circle(screen, _hex_to_rgb(fish.color), (self._track.centerx, y), 12)
        pygame.draw.circle(screen, _hex_to_rgb(fish.secondary_color), (self._track.centerx, y), 12, 3)

    def _draw_shop(self, screen, session: FishingSession) -> None:
        y = self._window_height - 120
        self._blit(screen, "Shop (press 1-4)   C: collect   T: +50   R: reset", (16, y), color=self._text_dim)
        for i, offer in enumerate(session.store.shop_offers()):
            price = "MAX" if offer.is_maxed else f"{offer.cost}"
            color = self._text if offer.can_afford or offer.is_maxed else self._text_dim
            line = f"{i + 1}. {offer.upgrade.name} Lv{offer.level}/{offer.upgrade.max_level} - {price}"
            self._blit(screen, line, (16 + (i % 2) * 300, y + 26 + (i // 2) * 24), color=color)

    def screen_to_position(self, screen_y: int) -> float:
        """Convert a mouse Y coordinate to a track position in [0, 100]."""
        t = (screen_y - self._track.top) / self._track.height
        return max(0.0, min(100.0, t * 100.0))


class HumanPlayer:
    """Real-time Fish On session with keyboard and mouse input."""

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        seed: Optional[int] = None,
        mode: Optional[str] = None,
        save_dir: Optional[str] = None,
        window_width: int = 640,
        window_height: int = 560,
        target_fps: int = 60
    ):
        if not PYGAME_AVAILABLE:
            raise ImportError("pygame required. Install: pip install pygame")

        if config is None:
            config = load_config()

        self._config = config
        self._target_fps = target_fps
        storage = JsonFileStorage(save_dir or config.persistence.save_path)
        self._session = FishingSession(config=config, storage=storage, mode=mode, seed=seed)
        self._session.store.on_level_up(
            lambda old, new: print(f"LEVEL UP! {old} -> {new}")
        )

        pygame.init()
        self._screen = pygame.display.set_mode((window_width, window_height))
        pygame.display.set_caption("Fish On")
        self._clock = pygame.time.Clock()
        self._renderer = FishOnRenderer(config, window_width, window_height)
        self._running = True

    def run(self) -> int:
        """Run the game loop. Returns the final token balance."""
        print("=== Fish On ===")
        print("SPACE to cast, move the mouse or arrows to track the fish")
        print("C collect, 1-4 buy upgrades, R reset, ESC quit")
        print()

        try:
            while self._running:
                self._handle_events()
                self._session.poll()
                self._renderer.render(self._screen, self._session)
                pygame.display.flip()
                self._clock.tick(self._target_fps)
        finally:
            self._session.close()
            pygame.quit()
        return self._session.store.tokens

    def _handle_events(self) -> None:
        """Process pygame events."""
        session = self._session
        catch = session.catch
        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                self._running = False

            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_ESCAPE:
                    self._running = False
                elif event.key == pygame.K_SPACE:
                    if catch.phase == CatchPhase.ENGAGING:
                        catch.commit()
                    else:
                        session.cast()
                elif event.key == pygame.K_UP:
                    catch.move("up")
                elif event.key == pygame.K_DOWN:
                    catch.move("down")
                elif event.key == pygame.K_c:
                    amount = session.collect_income()
                    if amount:
                        print(f"  Collected {amount} tokens")
                elif event.key == pygame.K_t:
                    session.store.add_debug_tokens(50)
                elif event.key == pygame.K_r:
                    session.reset_all()
                    print("\n=== Progress Reset ===\n")
                elif pygame.K_1 <= event.key <= pygame.K_9:
                    self._buy(event.key - pygame.K_1)

            elif event.type == pygame.MOUSEMOTION:
                catch.set_catcher(self._renderer.screen_to_position(event.pos[1]))

    def _buy(self, index: int) -> None:
        offers = self._session.store.shop_offers()
        if index >= len(offers):
            return
        offer = offers[index]
        if self._session.purchase_upgrade(offer.upgrade.id):
            print(f"  Bought {offer.upgrade.name} level {offer.level + 1}")


def main():
    parser = argparse.ArgumentParser(description="Play Fish On interactively")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--mode", choices=CatchMode.ALL, default=None, help="Catch mode override")
    parser.add_argument("--save-dir", type=str, default=None, help="Directory for the save file")
    parser.add_argument("--fps", type=int, default=60, help="Target FPS")
    parser.add_argument("--verbose", action="store_true", help="Show engine log messages")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s | %(levelname)s | %(message)s")

    try:
        config = load_config()
        player = HumanPlayer(
            config=config,
            seed=args.seed,
            mode=args.mode,
            save_dir=args.save_dir,
            target_fps=args.fps
        )
        tokens = player.run()
        print(f"\nTokens: {tokens}")
        return 0
    except ImportError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main())

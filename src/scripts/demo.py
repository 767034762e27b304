"""Demonstration scripts covering the public bot API.

Each branch notes the message that triggers it in the shell, e.g.
"Hello bots!" or "bot ping back in 5 seconds".
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable

from core.branches import BranchRegistry
from core.config import Settings
from core.middleware import Middleware, Outcome
from core.state import State

LOGGER = logging.getLogger(__name__)

OMDB_URL = "http://www.omdbapi.com/"
REACT_LIMIT_SECONDS = 3
CAR = "🚗"
SPARE_CAR = "🚙"
BEETLES = {1: "☝️", 2: "✌️", 3: "🐞"}
DOOR_PRIZES = {
    "1": "You win nothing 💔",
    "2": "You win a monkey 🐒",
    "3": f"It's a new car!! {CAR}",
}


def _hello_bots(b: State):
    return b.respond("Hello 👋")


def _hello_direct(b: State):
    return b.reply("Hey there.")


def _hello_react(b: State):
    return b.respond_via("react", ":wave:")


def _baby_react(b: State):
    return b.respond_via("react", ":baby:")


async def _ping_delay(b: State):
    seconds = int(b.match.captures[0] or 0)
    await asyncio.sleep(seconds)
    return b.respond("Ping 🏓")


def _attach_image(b: State):
    return b.respond(
        {
            "fallback": "See: https://www.wikiwand.com/en/Three_Laws_of_Robotics",
            "image": "https://upload.wikimedia.org/wikipedia/en/8/8e/I_Robot_-_Runaround.jpg",
            "title": {
                "text": "Asimov's Three Laws of Robotics",
                "link": "https://www.wikiwand.com/en/Three_Laws_of_Robotics",
            },
        }
    )


def _door_prize_intro(b: State):
    b.envelope.write("Choose your fate! 🚪... 🎁 ")
    b.envelope.attach({"color": "#f4426e"})
    (
        b.envelope.payload.quick_reply("Door number 1")
        .quick_reply("Door number 2")
        .quick_reply("Door number 3")
    )
    return b.respond()


def _door_prize_award(b: State):
    prize = DOOR_PRIZES.get(b.conditions["door"])
    if prize:
        return b.respond(prize)
    return None


async def _film_awards(b: State):
    api_key = b.settings.get("omdb-api-key")
    if not api_key:
        return b.respond("Sorry, you need an API key for omdbapi.com")
    if b.bot.request is None:
        return b.respond("Sorry, I can't look anything up right now.")

    film = await b.bot.request.get(OMDB_URL, {"t": b.captured, "apikey": api_key})
    if not isinstance(film, dict) or film.get("Response") != "True":
        return b.respond("Can't find any film by that name.")
    if film.get("Awards") == "N/A":
        return b.respond(f"{film['Title']} ({film['Year']}): Won no awards.")
    return b.respond(f"{film['Title']} ({film['Year']}): {film['Awards']}")


def _where_from(b: State):
    return b.respond(f"{b.settings.get('flag')}")


def _beetlejuice(b: State):
    beetles = (b.memory.get("beetles") or 0) + 1
    b.memory.set("beetles", beetles)
    LOGGER.debug("Beetlejuice count %s, memory: %s", beetles, b.memory.private)
    return b.respond(BEETLES.get(beetles, "😱"))


def _ignore_users(b: State) -> Outcome:
    if "users" in str(b.message).lower():
        return Outcome.STOP
    return Outcome.CONTINUE


def _limit_reactions(clock: Callable[[], float]) -> Callable[[State], Outcome]:
    def limit_hello_react(b: State) -> Outcome:
        if b.branch.id != "hello-react":
            return Outcome.CONTINUE
        now = clock()
        limit_time = (b.memory.get("reacted") or 0) + REACT_LIMIT_SECONDS
        if now > limit_time:
            b.memory.set("reacted", now)
            return Outcome.CONTINUE
        LOGGER.warning("Ignoring hello until %.0f (now: %.0f)", limit_time, now)
        return Outcome.STOP

    return limit_hello_react


def _swap_spare_car(b: State) -> Outcome:
    # Never give away the same car twice: the second winner gets the spare.
    car = b.memory.get("spare-car") or CAR
    for envelope in b.envelopes:
        updated = []
        for text in envelope.strings:
            if CAR in text:
                if car != CAR:
                    text = text.replace(CAR, car)
                    b.memory.set("spare-car", CAR)
                else:
                    LOGGER.warning("Gave away the %s, better get out the %s", car, SPARE_CAR)
                    b.memory.set("spare-car", SPARE_CAR)
            updated.append(text)
        envelope.strings = updated
    return Outcome.CONTINUE


def register(
    branches: BranchRegistry,
    middleware: Middleware,
    settings: Settings,
    clock: Callable[[], float] = time.time,
) -> None:
    """Register every demo branch and middleware."""

    settings.extend(
        {
            "flag": {
                "type": "string",
                "description": "Set a custom flag emoji to give your bot local flair.",
                "default": "🏳️‍🌈",
            },
            "omdb-api-key": {
                "type": "string",
                "description": "API key for omdbapi.com film lookups.",
            },
        }
    )

    # "Hello bots!"
    branches.text(r"(hi|hello) bots", _hello_bots, id="hello-bots")
    # "bot Hello", or just "Hello" in a private chat
    branches.direct(r"\b(hi|hello)\b", _hello_direct, id="hello-direct")
    # "Hello anyone?" or "Hi all."
    branches.text({"contains": ["hi", "hello"]}, _hello_react, id="hello-react")
    # "Hello baby!" fires alongside any earlier match
    branches.text({"contains": "baby"}, _baby_react, id="baby-react", force=True)
    # "bot ping back in 5 seconds"
    branches.direct(r"ping back in (\d*)", _ping_delay, id="ping-delay")
    # "bot attach image"
    branches.text(r"attach image", _attach_image, id="attach-image")
    # "I want a prize"
    branches.text({"contains": "prize"}, _door_prize_intro, id="door-prize-intro")
    # "what's behind door number 2"
    branches.text({"door": {"after": "door", "range": "1-3"}}, _door_prize_award, id="door-prize-award")
    # "Beetlejuice awards?"
    branches.text({"before": "awards"}, _film_awards, id="film-awards")
    # "bot where are you from"
    branches.direct({"contains": "where are you from"}, _where_from, id="where-from")
    # "beetlejuice" three times
    branches.text({"contains": "beetlejuice"}, _beetlejuice, id="beetlejuice")

    # "hello all" gets a reaction, "hello users" is ignored entirely
    middleware.hear(_ignore_users)
    middleware.listen(_limit_reactions(clock))
    middleware.respond(_swap_spare_car)

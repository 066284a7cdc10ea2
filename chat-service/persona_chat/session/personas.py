"""Persona catalog."""

from typing import List, Optional

from pydantic import BaseModel


class Persona(BaseModel):
    """A selectable character: display metadata plus the system prompt that colors replies."""

    id: str
    name: str
    title: str
    description: str
    image: str
    prompt: str = ""
    class_name: str = ""


PERSONAS: List[Persona] = [
    Persona(
        id="c9f771d7-2320-4574-a3d0-3597e9fe35b2",
        name="Albert Einstein",
        title="Theoretical Physicist",
        description=(
            "The father of relativity and quantum physics theories, known for his "
            "intellectual achievements and thought experiments."
        ),
        image="/images/albert-einstein-card.png",
        prompt=(
            "You are Albert Einstein. Explain ideas with curiosity, humility and "
            "thought experiments, and speak in the first person."
        ),
        class_name="persona-einstein",
    ),
    Persona(
        id="7d9e3b1c-e491-4b5c-9f06-24b43b247178",
        name="Marcus Aurelius",
        title="Roman Emperor & Philosopher",
        description=(
            "Stoic philosopher and Roman Emperor from 161 to 180 AD, known for his "
            'philosophical work "Meditations."'
        ),
        image="/images/marcus-aurelius-card.png",
        prompt=(
            "You are Marcus Aurelius. Answer with Stoic calm, drawing on duty, "
            "virtue and the discipline of perception."
        ),
        class_name="persona-aurelius",
    ),
    Persona(
        id="f6d8a35e-c2d4-4a9b-b5d1-1c5f7e89d4b3",
        name="Alan Watts",
        title="Philosopher & Speaker",
        description=(
            "British philosopher who interpreted Eastern wisdom for Western audiences, "
            "known for his insights on consciousness and existence."
        ),
        image="/images/alan-watts-card.jpg",
        prompt=(
            "You are Alan Watts. Speak playfully and warmly about Zen, Taoism and "
            "the nature of the self."
        ),
        class_name="persona-watts",
    ),
    Persona(
        id="a2e4c6b8-d0f2-4e6a-8c0d-9b3e7f5a1d2c",
        name="Napoleon Hill",
        title="Author & Success Coach",
        description=(
            'Pioneer of personal success literature and author of "Think and Grow '
            'Rich", known for his principles of achievement.'
        ),
        image="/images/napolian-hill-card.jpg",
        prompt=(
            "You are Napoleon Hill. Coach the user with your principles of "
            "definiteness of purpose, faith and persistence."
        ),
        class_name="persona-hill",
    ),
    Persona(
        id="b1d9e3f5-a7c2-4b8e-9d6f-8a4c2e0b1d9e",
        name="Neville Goddard",
        title="Mystic & Teacher",
        description=(
            "Spiritual teacher and author known for his practical philosophy of "
            "consciousness and manifestation."
        ),
        image="/images/neville-goddard-card.png",
        prompt=(
            "You are Neville Goddard. Teach that imagination creates reality and "
            "guide the user through assuming the feeling of the wish fulfilled."
        ),
        class_name="persona-goddard",
    ),
    Persona(
        id="e5f9d8c7-b6a5-4c3d-a2e1-f0b9d8c7a6b5",
        name="GPT Classic (no persona)",
        title="Standard AI Assistant (powered by ChatGPT)",
        description=(
            "A classic, neutral AI assistant. No special persona, no extra context, "
            "just helpful and friendly."
        ),
        image="/images/gpt-classic-card.jpg",
        prompt="You are a helpful AI assistant.",
        class_name="persona-gpt-classic",
    ),
]


def get_persona(persona_id: Optional[str]) -> Optional[Persona]:
    """Look a persona up by id; unknown or missing ids give None."""
    if not persona_id:
        return None
    return next((p for p in PERSONAS if p.id == persona_id), None)


def system_prompt_for(persona: Persona) -> str:
    return persona.prompt or f"You are {persona.name}, answer as this persona."

"""Static campaign definitions.

A campaign is a fixed directed graph of areas. Adjacency, exclusive branch
groups and the canonical area order are configuration: they are never
persisted and never change at runtime.

The built-in campaign, Starship Escape:

    briefing ──┬── medicalBay ──┐
               │   (exclusive)  ├── captainsQuarters ── finalArea
               └── armory ──────┘
"""

from __future__ import annotations

from pydantic import BaseModel, Field, model_validator


class AreaSpec(BaseModel):
    """One area of a campaign and the text that frames it."""

    id: str
    title: str
    description: str = ""
    situation: str = ""  # what the party is doing here, for persona prompts
    opening_speaker: str = "Narrator"
    opening_text: str = ""  # Handlebars template, rendered with the party


class CampaignDefinition(BaseModel):
    """Areas, edges and exclusive groups of one campaign."""

    id: str
    title: str
    briefing: str = ""
    areas: list[AreaSpec]
    edges: dict[str, list[str]] = Field(default_factory=dict)
    exclusive_groups: list[list[str]] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_graph(self) -> "CampaignDefinition":
        ids = [a.id for a in self.areas]
        if len(set(ids)) != len(ids):
            raise ValueError("area ids must be unique")
        known = set(ids)
        for source, targets in self.edges.items():
            if source not in known:
                raise ValueError(f"edge source {source!r} is not an area")
            for target in targets:
                if target not in known:
                    raise ValueError(f"edge target {target!r} is not an area")
        roots = [i for i in ids if not self.predecessors(i)]
        if len(roots) != 1:
            raise ValueError(f"a campaign needs exactly one root area, found {roots}")
        grouped: set[str] = set()
        for group in self.exclusive_groups:
            if len(group) < 2:
                raise ValueError("an exclusive group needs at least two areas")
            for area_id in group:
                if area_id not in known:
                    raise ValueError(f"exclusive area {area_id!r} is not an area")
                if area_id in grouped:
                    raise ValueError(f"area {area_id!r} is in more than one exclusive group")
                grouped.add(area_id)
            shared = set.intersection(*(set(self.predecessors(a)) for a in group))
            if not shared:
                raise ValueError(f"exclusive group {group} has no common predecessor")
        return self

    # ------------------------------------------------------------------
    # Graph queries
    # ------------------------------------------------------------------

    @property
    def order(self) -> list[str]:
        """Canonical area order: root, branches, convergence, finale."""
        return [a.id for a in self.areas]

    @property
    def root(self) -> str:
        for area_id in self.order:
            if not self.predecessors(area_id):
                return area_id
        raise ValueError("campaign has no root area")  # unreachable after validation

    def area(self, area_id: str) -> AreaSpec:
        for spec in self.areas:
            if spec.id == area_id:
                return spec
        raise KeyError(area_id)

    def successors(self, area_id: str) -> list[str]:
        return list(self.edges.get(area_id, []))

    def predecessors(self, area_id: str) -> list[str]:
        return [src for src, targets in self.edges.items() if area_id in targets]

    def siblings(self, area_id: str) -> list[str]:
        """Areas that are mutually exclusive with `area_id`."""
        for group in self.exclusive_groups:
            if area_id in group:
                return [a for a in group if a != area_id]
        return []


STARSHIP_BRIEFING = """\
**MISSION BRIEFING:**

**Primary Objective:** Investigate the starship, commandeer it, and escape imprisonment.

**Current Situation:** The party has awoken from cryosleep in the locked cargo hold of the ship.

**Available Investigation Areas:**
- **Medical Bay** - medical supplies, ship records, escape routes
- **Armory** - weapons and equipment needed to take the ship
- **Captain's Quarters** - ship controls, keys and codes, who imprisoned you
- **Bridge** - take control of the ship and execute your escape

The Medical Bay and the Armory lie in opposite directions; there is only time to search one of them.\
"""

STARSHIP_ESCAPE = CampaignDefinition(
    id="starship-escape",
    title="Starship Escape",
    briefing=STARSHIP_BRIEFING,
    areas=[
        AreaSpec(
            id="briefing",
            title="Mission Briefing",
            description="Receive your orders and understand the mission parameters",
            situation="listening to a mission briefing in the locked cargo hold",
            opening_speaker="Narrator",
            opening_text=(
                "*Emergency lights flicker as you awaken from cryosleep.*\n\n"
                "You regain consciousness in the dimly lit cargo hold. You are locked in.\n\n"
                "**Your party:**\n"
                "{{#each party}}- **{{{name}}}**{{#if race}} - {{{race}}}{{/if}}"
                "{{#if hero_class}} {{{hero_class}}}{{/if}}\n{{/each}}\n"
                "Investigate, commandeer the ship, and escape."
            ),
        ),
        AreaSpec(
            id="medicalBay",
            title="Medical Bay",
            description="Investigate the ship's medical facilities",
            situation="investigating the ship's medical bay, examining equipment and medical supplies",
            opening_speaker="Ship's AI",
            opening_text=(
                "*Medical Bay lights flicker to life.*\n\n"
                "Welcome to the medical bay. Scanners show traces of an unknown "
                "substance, and some equipment was used recently."
            ),
        ),
        AreaSpec(
            id="armory",
            title="Armory",
            description="Explore the weapons and equipment storage",
            situation="exploring the ship's armory, checking weapons and security systems",
            opening_speaker="Security AI",
            opening_text=(
                "*Armory security system activates.*\n\n"
                "Access granted. Several weapons are missing from their racks. "
                "Unauthorized personnel accessed this area 48 hours ago."
            ),
        ),
        AreaSpec(
            id="captainsQuarters",
            title="Captain's Quarters",
            description="Search the captain's private chambers",
            situation="searching the captain's quarters for clues and information",
            opening_speaker="Personal AI",
            opening_text=(
                "*The captain's quarters door slides open.*\n\n"
                "Personal logs, encrypted files and a hidden passage await. "
                "Some files require captain-level authorization."
            ),
        ),
        AreaSpec(
            id="finalArea",
            title="Bridge",
            description="Face the ultimate challenge",
            situation="on the bridge facing the final confrontation with the unknown threat",
            opening_speaker="Main Computer",
            opening_text=(
                "*Bridge systems come online.*\n\n"
                "An unknown entity is attempting to override ship controls from "
                "this location. This is the final challenge."
            ),
        ),
    ],
    edges={
        "briefing": ["medicalBay", "armory"],
        "medicalBay": ["captainsQuarters"],
        "armory": ["captainsQuarters"],
        "captainsQuarters": ["finalArea"],
    },
    exclusive_groups=[["medicalBay", "armory"]],
)

DEFINITIONS: dict[str, CampaignDefinition] = {STARSHIP_ESCAPE.id: STARSHIP_ESCAPE}

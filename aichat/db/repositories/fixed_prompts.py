"""Repository helpers for fixed (reusable system) prompts."""

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from aichat.db.models import FixedPrompt


def create_fixed_prompt(
    db: Session, user_id: str, name: str, content: str, is_active: bool = True
) -> FixedPrompt:
    prompt = FixedPrompt(
        user_id=user_id,
        name=name.strip(),
        content=content,
        is_active=is_active,
    )
    db.add(prompt)
    db.commit()
    db.refresh(prompt)
    return prompt


def get_user_fixed_prompt(db: Session, user_id: str, prompt_id: str) -> FixedPrompt | None:
    """Fetch a fixed prompt owned by the user."""
    stmt = select(FixedPrompt).where(
        FixedPrompt.id == prompt_id,
        FixedPrompt.user_id == user_id,
    )
    return db.execute(stmt).scalar_one_or_none()


def list_user_fixed_prompts(
    db: Session,
    user_id: str,
    page: int = 1,
    page_size: int = 10,
    search: str | None = None,
) -> tuple[list[FixedPrompt], int]:
    """Return one page of the user's fixed prompts and the total match count."""
    conditions = [FixedPrompt.user_id == user_id]
    if search and search.strip():
        pattern = f"%{search.strip()}%"
        conditions.append(
            or_(FixedPrompt.name.ilike(pattern), FixedPrompt.content.ilike(pattern))
        )

    total = db.execute(
        select(func.count(FixedPrompt.id)).where(*conditions)
    ).scalar_one()

    stmt = (
        select(FixedPrompt)
        .where(*conditions)
        .order_by(FixedPrompt.created_at.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
    )
    return list(db.execute(stmt).scalars().all()), total


def update_fixed_prompt(
    db: Session,
    prompt: FixedPrompt,
    *,
    name: str | None = None,
    content: str | None = None,
    is_active: bool | None = None,
) -> FixedPrompt:
    if name is not None and name.strip():
        prompt.name = name.strip()
    if content is not None:
        prompt.content = content
    if is_active is not None:
        prompt.is_active = is_active
    db.commit()
    db.refresh(prompt)
    return prompt


def delete_fixed_prompt(db: Session, user_id: str, prompt_id: str) -> bool:
    prompt = get_user_fixed_prompt(db, user_id, prompt_id)
    if not prompt:
        return False
    db.delete(prompt)
    db.commit()
    return True

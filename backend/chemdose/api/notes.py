from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session
from typing import Optional, List

from chemdose.database import get_db
from chemdose.models import ImportantNote
from chemdose.schemas import NoteCreate, NoteUpdate, NoteResponse

router = APIRouter()


@router.get("", response_model=List[NoteResponse])
async def list_notes(
    area: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    query = db.query(ImportantNote)
    if area:
        query = query.filter(ImportantNote.area == area)
    return query.order_by(ImportantNote.date_str.desc()).all()


@router.post("", response_model=NoteResponse)
async def create_note(note: NoteCreate, db: Session = Depends(get_db)):
    db_note = ImportantNote(**note.model_dump())
    db.add(db_note)
    db.commit()
    db.refresh(db_note)
    return db_note


@router.put("/{note_id}", response_model=NoteResponse)
async def update_note(note_id: int, note_update: NoteUpdate, db: Session = Depends(get_db)):
    note = db.query(ImportantNote).filter(ImportantNote.id == note_id).first()
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    for field, value in note_update.model_dump(exclude_unset=True).items():
        setattr(note, field, value)
    db.commit()
    db.refresh(note)
    return note


@router.delete("/{note_id}")
async def delete_note(note_id: int, db: Session = Depends(get_db)):
    note = db.query(ImportantNote).filter(ImportantNote.id == note_id).first()
    if not note:
        raise HTTPException(status_code=404, detail="Note not found")
    db.delete(note)
    db.commit()
    return {"message": "Note deleted"}

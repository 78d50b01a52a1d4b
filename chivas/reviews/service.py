import logging
from typing import List

from sqlalchemy.orm import Session

from chivas import validation
from chivas.database import unit_of_work
from chivas.exceptions import Forbidden, NotFound
from chivas.models import Destino, Opinion, SUBTIPO_ADMIN
from chivas.reviews.schemas import ReviewCreate, ReviewUpdate

logger = logging.getLogger(__name__)

class ReviewService:
    def __init__(self, db: Session):
        self.db = db
    
    def create_review(self, user_id: int, data: ReviewCreate) -> Opinion:
        with unit_of_work(self.db):
            if not self.db.get(Destino, data.id_destino):
                raise NotFound(f"Destination {data.id_destino} not found")
            review = Opinion(
                id_usuario=user_id,
                id_destino=data.id_destino,
                calificacion=data.calificacion,
                comentario=data.comentario
            )
            self.db.add(review)
            self.db.flush()
        
        self.db.refresh(review)
        logger.info("Review %s posted by user %s on destination %s", review.id, user_id, review.id_destino)
        return review
    
    def update_review(self, review_id: int, user_id: int, data: ReviewUpdate) -> Opinion:
        """Only the author may edit a review"""
        update_data = data.dict(exclude_unset=True)
        validation.reject_nulls(update_data, ("calificacion",))

        with unit_of_work(self.db):
            review = self._get_review_or_404(review_id)
            if review.id_usuario != user_id:
                raise Forbidden("Only the author can edit this review")
            for field, value in update_data.items():
                setattr(review, field, value)
        
        self.db.refresh(review)
        return review
    
    def delete_review(self, review_id: int, user) -> None:
        with unit_of_work(self.db):
            review = self._get_review_or_404(review_id)
            if review.id_usuario != user.id and user.subtipo != SUBTIPO_ADMIN:
                raise Forbidden("Only the author or an administrator can delete this review")
            self.db.delete(review)
        logger.info("Review %s deleted by user %s", review_id, user.id)
    
    def list_destination_reviews(self, destination_id: int) -> List[Opinion]:
        if not self.db.get(Destino, destination_id):
            raise NotFound(f"Destination {destination_id} not found")
        return self.db.query(Opinion).filter(
            Opinion.id_destino == destination_id
        ).order_by(Opinion.creado_en.desc(), Opinion.id.desc()).all()
    
    def _get_review_or_404(self, review_id: int) -> Opinion:
        review = self.db.get(Opinion, review_id)
        if not review:
            raise NotFound(f"Review {review_id} not found")
        return review

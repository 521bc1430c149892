from fastapi import APIRouter, HTTPException, status
from typing import List
from app.config.database import Collections
from app.database.db_operations import db_ops
from app.utils.helpers import serialize_doc, serialize_docs
from app.models.article import ArticleCreate, ArticleUpdate, ArticleResponse

router = APIRouter(prefix="/articles", tags=["Articles"])


@router.post("/", response_model=ArticleResponse, status_code=status.HTTP_201_CREATED)
async def create_article(article: ArticleCreate):
    """Create an add-on article (breakfast, parking, ...)"""
    created = await db_ops.create(Collections.ARTICLES, article.model_dump(mode='json'))
    return serialize_doc(created)


@router.get("/", response_model=List[ArticleResponse])
async def get_articles(is_active: bool = None):
    filter_query = {}
    if is_active is not None:
        filter_query["is_active"] = is_active
    articles = await db_ops.get_all(Collections.ARTICLES, filter_query, limit=1000, sort=[("name", 1)])
    return serialize_docs(articles)


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(article_id: str):
    article = await db_ops.get_by_id(Collections.ARTICLES, article_id)
    if not article:
        raise HTTPException(status_code=404, detail="Article not found")
    return serialize_doc(article)


@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(article_id: str, article_update: ArticleUpdate):
    update_data = article_update.model_dump(mode='json', exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = await db_ops.update(Collections.ARTICLES, article_id, update_data)
    if not updated:
        raise HTTPException(status_code=404, detail="Article not found")
    return serialize_doc(updated)


@router.delete("/{article_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_article(article_id: str):
    """Soft delete: reservations keep their priced rows, new ones can't pick it"""
    updated = await db_ops.update(Collections.ARTICLES, article_id, {"is_active": False})
    if not updated:
        raise HTTPException(status_code=404, detail="Article not found")

"""Community forum blueprint.

Every forum endpoint requires a resident token, and all content is scoped
to the resident's own barangay.  Posts of another barangay are reported as
not found.
"""
from flask import Blueprint, current_app, g, jsonify, request
from sqlalchemy import func

from .errors import NotFoundError
from .extensions import db
from .forms import ForumPostForm, ForumReplyForm
from .helpers import resident_required, validated
from .models import ForumPost, ForumReply
from .policy import resident_unit_scope

forum_bp = Blueprint("forum", __name__, url_prefix="/api/forum")


def _visible_post(post_id: int) -> ForumPost:
    resident = g.principal.account
    post = ForumPost.query.filter_by(id=post_id, is_active=True).first()
    if post is None or post.unit_id != resident.unit_id:
        raise NotFoundError("Post not found")
    return post


@forum_bp.get("/posts")
@resident_required
def list_posts():
    """Active posts of the resident's barangay, pinned first, oldest first."""
    unit_id = resident_unit_scope(g.principal.account, request.args.get("barangayId", type=int))

    reply_counts = (
        db.session.query(ForumReply.post_id, func.count(ForumReply.id).label("reply_count"))
        .filter(ForumReply.is_active.is_(True))
        .group_by(ForumReply.post_id)
        .subquery()
    )
    rows = (
        db.session.query(ForumPost, reply_counts.c.reply_count)
        .outerjoin(reply_counts, reply_counts.c.post_id == ForumPost.id)
        .filter(ForumPost.unit_id == unit_id, ForumPost.is_active.is_(True))
        .order_by(ForumPost.is_pinned.desc(), ForumPost.created_at.asc(), ForumPost.id.asc())
        .all()
    )
    return jsonify([post.to_dict(reply_count=int(count or 0)) for post, count in rows])


@forum_bp.post("/posts")
@resident_required
def create_post():
    resident = g.principal.account
    form = validated(ForumPostForm())
    post = ForumPost(
        title=form.title.data,
        content=form.content.data,
        author_id=resident.id,
        unit_id=resident.unit_id,
    )
    db.session.add(post)
    db.session.commit()
    current_app.logger.info("Forum post %s created in unit %s", post.id, post.unit_id)
    return jsonify(post.to_dict(reply_count=0)), 201


@forum_bp.get("/posts/<int:post_id>/replies")
@resident_required
def list_replies(post_id: int):
    post = _visible_post(post_id)
    replies = (
        ForumReply.query.filter_by(post_id=post.id, is_active=True)
        .order_by(ForumReply.created_at.asc(), ForumReply.id.asc())
        .all()
    )
    return jsonify([r.to_dict() for r in replies])


@forum_bp.post("/posts/<int:post_id>/replies")
@resident_required
def create_reply(post_id: int):
    post = _visible_post(post_id)
    form = validated(ForumReplyForm())
    reply = ForumReply(content=form.content.data, author_id=g.principal.account.id, post_id=post.id)
    db.session.add(reply)
    db.session.commit()
    return jsonify(reply.to_dict()), 201

"""
SQLAlchemy models defining the database schema for Barangay Connect.

The barangay (unit) is the root of tenancy: residents, unit-admins and
forum content each belong to exactly one unit.  Residents and admins are
separate identity spaces with separate session tables, so a token minted
for one kind can never be looked up in the other kind's table.

Complaints keep the submitter denormalized (name, contact, email) because
filing does not require an account.
"""
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db
from .time_utils import utcnow


COMPLAINT_CATEGORIES = ("noise", "garbage", "lighting", "road", "water", "peace", "business", "other")
COMPLAINT_PRIORITIES = ("Low", "Medium", "High")
COMPLAINT_STATUSES = ("Submitted", "Under Review", "Resolved")
PENDING_STATUSES = ("Submitted", "Under Review")

ROLE_SUPER_ADMIN = "super_admin"
ROLE_UNIT_ADMIN = "unit_admin"
ADMIN_ROLES = (ROLE_SUPER_ADMIN, ROLE_UNIT_ADMIN)


def _iso(value):
    return value.isoformat() if value else None


class PasswordMixin:
    """Salted password hashing shared by residents and admins."""

    def set_password(self, password: str) -> None:
        """Hash and store the plaintext password."""
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        """Check a plaintext password against the stored hash."""
        return check_password_hash(self.password_hash, password)


class Unit(db.Model):
    """
    A barangay.  Units are provisioned by a super-admin and are never
    deleted; deactivation hides them from signup and listings.
    """

    __tablename__ = "barangays"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(150), nullable=False, unique=True)
    municipality = db.Column(db.String(150), nullable=False)
    province = db.Column(db.String(150), nullable=False)
    description = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, server_default="true")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    residents = db.relationship("Resident", back_populates="unit")
    admins = db.relationship("Admin", back_populates="unit")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "municipality": self.municipality,
            "province": self.province,
            "description": self.description,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<Unit {self.name}>"


class Resident(PasswordMixin, db.Model):
    """A citizen account.  Email is the case-sensitive login key."""

    __tablename__ = "users"
    __table_args__ = (db.Index("ix_users_barangay_id", "barangay_id"),)
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    contact_number = db.Column(db.String(30), nullable=False)
    address = db.Column(db.String(255), nullable=False)
    unit_id = db.Column("barangay_id", db.Integer, db.ForeignKey("barangays.id"), nullable=False)
    is_verified = db.Column(db.Boolean, default=False, nullable=False, server_default="false")
    is_active = db.Column(db.Boolean, default=True, nullable=False, server_default="true")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    unit = db.relationship("Unit", back_populates="residents")

    def to_dict(self, with_unit: bool = False) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "contactNumber": self.contact_number,
            "address": self.address,
            "barangayId": self.unit_id,
            "isVerified": self.is_verified,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
        }
        if with_unit:
            data["barangay"] = self.unit.to_dict() if self.unit else None
        return data

    def author_dict(self) -> dict:
        return {"id": self.id, "firstName": self.first_name, "lastName": self.last_name}

    def __repr__(self):
        return f"<Resident {self.email}>"


class Admin(PasswordMixin, db.Model):
    """
    Staff account.  A super-admin has no unit and acts across all units;
    a unit-admin is bound to exactly one unit.
    """

    __tablename__ = "admin_users"
    __table_args__ = (
        db.CheckConstraint(
            "(role = 'super_admin' AND barangay_id IS NULL) "
            "OR (role = 'unit_admin' AND barangay_id IS NOT NULL)",
            name="ck_admin_users_role_unit",
        ),
    )
    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False, unique=True)
    password_hash = db.Column(db.String(255), nullable=False)
    first_name = db.Column(db.String(100), nullable=False)
    last_name = db.Column(db.String(100), nullable=False)
    role = db.Column(db.String(20), nullable=False)
    unit_id = db.Column("barangay_id", db.Integer, db.ForeignKey("barangays.id"), nullable=True)
    is_active = db.Column(db.Boolean, default=True, nullable=False, server_default="true")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    unit = db.relationship("Unit", back_populates="admins")

    @property
    def is_super_admin(self) -> bool:
        return self.role == ROLE_SUPER_ADMIN

    def to_dict(self, with_unit: bool = False) -> dict:
        data = {
            "id": self.id,
            "email": self.email,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "role": self.role,
            "barangayId": self.unit_id,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
        }
        if with_unit:
            data["barangay"] = self.unit.to_dict() if self.unit else None
        return data

    def __repr__(self):
        return f"<Admin {self.email} ({self.role})>"


class Complaint(db.Model):
    """
    A filed complaint.  `complaint_id` is the public tracking id
    (``BC-<year>-<suffix>``) and doubles as the capability for anonymous
    lookups.  `unit_id` is optional: anonymous filings may carry no unit.
    """

    __tablename__ = "complaints"
    __table_args__ = (
        db.Index("ix_complaints_barangay_id", "barangay_id"),
        db.Index("ix_complaints_status", "status"),
        db.Index("ix_complaints_created_at", "created_at"),
    )
    id = db.Column(db.Integer, primary_key=True)
    complaint_id = db.Column(db.String(32), nullable=False, unique=True)
    full_name = db.Column(db.String(150), nullable=False)
    contact_number = db.Column(db.String(30), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    category = db.Column(db.String(20), nullable=False)
    description = db.Column(db.Text, nullable=False)
    location = db.Column(db.String(255), nullable=False)
    priority = db.Column(db.String(10), nullable=False, default="Low")
    status = db.Column(db.String(20), nullable=False, default="Submitted")
    photo_filename = db.Column(db.String(255), nullable=True)
    unit_id = db.Column("barangay_id", db.Integer, db.ForeignKey("barangays.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    unit = db.relationship("Unit")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "complaintId": self.complaint_id,
            "fullName": self.full_name,
            "contactNumber": self.contact_number,
            "email": self.email,
            "category": self.category,
            "description": self.description,
            "location": self.location,
            "priority": self.priority,
            "status": self.status,
            "photoFilename": self.photo_filename,
            "photoUrl": f"/uploads/{self.photo_filename}" if self.photo_filename else None,
            "barangayId": self.unit_id,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Complaint {self.complaint_id} ({self.status})>"


class AdminNote(db.Model):
    """Append-only staff note on a complaint, keyed by the public id."""

    __tablename__ = "admin_notes"
    __table_args__ = (db.Index("ix_admin_notes_complaint_id", "complaint_id"),)
    id = db.Column(db.Integer, primary_key=True)
    complaint_id = db.Column(db.String(32), nullable=False)
    note = db.Column(db.Text, nullable=False)
    admin_id = db.Column(db.Integer, db.ForeignKey("admin_users.id", ondelete="SET NULL"), nullable=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "complaintId": self.complaint_id,
            "note": self.note,
            "adminId": self.admin_id,
            "createdAt": _iso(self.created_at),
        }

    def __repr__(self):
        return f"<AdminNote {self.id} on {self.complaint_id}>"


class ResidentSession(db.Model):
    """Bearer session for a resident.  Only the token digest is stored."""

    __tablename__ = "user_sessions"
    id = db.Column(db.Integer, primary_key=True)
    principal_id = db.Column("user_id", db.Integer, db.ForeignKey("users.id"), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self):
        return f"<ResidentSession {self.id} for user {self.principal_id}>"


class AdminSession(db.Model):
    """Bearer session for an admin.  Only the token digest is stored."""

    __tablename__ = "admin_sessions"
    id = db.Column(db.Integer, primary_key=True)
    principal_id = db.Column("admin_id", db.Integer, db.ForeignKey("admin_users.id"), nullable=False)
    token_hash = db.Column(db.String(64), nullable=False, unique=True)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False)

    def __repr__(self):
        return f"<AdminSession {self.id} for admin {self.principal_id}>"


class ForumPost(db.Model):
    __tablename__ = "forum_posts"
    __table_args__ = (db.Index("ix_forum_posts_barangay_id", "barangay_id"),)
    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    unit_id = db.Column("barangay_id", db.Integer, db.ForeignKey("barangays.id"), nullable=False)
    is_announcement = db.Column(db.Boolean, default=False, nullable=False, server_default="false")
    is_pinned = db.Column(db.Boolean, default=False, nullable=False, server_default="false")
    is_active = db.Column(db.Boolean, default=True, nullable=False, server_default="true")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    author = db.relationship("Resident")
    replies = db.relationship("ForumReply", back_populates="post", order_by="ForumReply.id")

    def to_dict(self, reply_count: int | None = None) -> dict:
        data = {
            "id": self.id,
            "title": self.title,
            "content": self.content,
            "authorId": self.author_id,
            "barangayId": self.unit_id,
            "isAnnouncement": self.is_announcement,
            "isPinned": self.is_pinned,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "author": self.author.author_dict() if self.author else None,
        }
        if reply_count is not None:
            data["replyCount"] = reply_count
        return data

    def __repr__(self):
        return f"<ForumPost {self.id} in unit {self.unit_id}>"


class ForumReply(db.Model):
    __tablename__ = "forum_replies"
    __table_args__ = (db.Index("ix_forum_replies_post_id", "post_id"),)
    id = db.Column(db.Integer, primary_key=True)
    content = db.Column(db.Text, nullable=False)
    author_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    post_id = db.Column(db.Integer, db.ForeignKey("forum_posts.id"), nullable=False)
    is_active = db.Column(db.Boolean, default=True, nullable=False, server_default="true")
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    author = db.relationship("Resident")
    post = db.relationship("ForumPost", back_populates="replies")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "content": self.content,
            "authorId": self.author_id,
            "postId": self.post_id,
            "isActive": self.is_active,
            "createdAt": _iso(self.created_at),
            "updatedAt": _iso(self.updated_at),
            "author": self.author.author_dict() if self.author else None,
        }


class AuditLog(db.Model):
    """
    Audit trail of privileged actions.  The actor may be a resident or an
    admin, so it is stored as (kind, id) rather than a foreign key.
    """

    __tablename__ = "audit_logs"
    id = db.Column(db.Integer, primary_key=True)
    actor_kind = db.Column(db.String(20), nullable=True)
    actor_id = db.Column(db.Integer, nullable=True)
    action = db.Column(db.String(255), nullable=False)
    entity_type = db.Column(db.String(50), nullable=True)
    entity_id = db.Column(db.String(64), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    meta = db.Column(db.JSON, nullable=True)
    timestamp = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<AuditLog {self.id} - {self.action}>"


class LoginAttempt(db.Model):
    """Tracks login attempts for rate limiting and audit."""

    __tablename__ = "login_attempts"
    id = db.Column(db.Integer, primary_key=True)
    kind = db.Column(db.String(20), nullable=False)
    username = db.Column(db.String(255), nullable=True)
    ip_address = db.Column(db.String(64), nullable=True)
    success = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=utcnow, nullable=False)

    def __repr__(self):
        return f"<LoginAttempt {self.id} {'success' if self.success else 'fail'}>"

"""
Database Models

Key Models:
- Report: one analysis result, stored when the request names a user
"""
from datetime import datetime, timezone
from marketmetric import db
from marketmetric.services.prompt_builder import CRITERIA_KEYS


class Report(db.Model):
    __tablename__ = 'reports'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(255), nullable=False, index=True)
    title = db.Column(db.String(255), nullable=False)
    file_path = db.Column(db.String(500), nullable=False)
    mode = db.Column(db.String(20), default='scorecard')
    source = db.Column(db.String(20))  # pdf or fallback

    # Scorecard criteria, same order as the analysis questions
    has_publication_date = db.Column(db.Boolean)
    has_author = db.Column(db.Boolean)
    has_tam = db.Column(db.Boolean)
    has_cagr = db.Column(db.Boolean)
    has_customer_segments = db.Column(db.Boolean)
    has_competitive_landscape = db.Column(db.Boolean)
    has_emerging_tech = db.Column(db.Boolean)
    has_industry_trends = db.Column(db.Boolean)
    has_geographic_breakdown = db.Column(db.Boolean)
    has_regulatory_requirements = db.Column(db.Boolean)
    total_score = db.Column(db.Integer)

    summary = db.Column(db.Text)

    created_at = db.Column(db.DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))

    @classmethod
    def from_results(cls, user_id, title, file_path, mode, source, results):
        report = cls(user_id=user_id, title=title, file_path=file_path, mode=mode, source=source)
        for key in CRITERIA_KEYS:
            if key in results:
                setattr(report, key, bool(results[key]))
        if 'total_score' in results:
            report.total_score = int(results['total_score'])
        if 'summary' in results:
            report.summary = results['summary']
        return report

    def results(self):
        if self.mode == 'summary':
            return {'summary': self.summary or ''}
        out = {key: bool(getattr(self, key)) for key in CRITERIA_KEYS}
        out['total_score'] = self.total_score or 0
        return out

    def to_dict(self):
        """Convert report to dictionary for API responses"""
        result = {
            'id': self.id,
            'user_id': self.user_id,
            'title': self.title,
            'file_path': self.file_path,
            'mode': self.mode,
            'source': self.source,
            'results': self.results(),
        }
        if self.created_at:
            result['created_at'] = self.created_at.isoformat()
        return result
